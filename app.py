import os
import json
import uuid
import zipfile
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv
from flask import Flask, request, jsonify, send_file
from werkzeug.datastructures import FileStorage

from sprite_rig import (
    DocumentError,
    ImportFailed,
    ImportSettings,
    build_rig_data,
    import_document,
    load_document,
)
from sprite_rig.settings import SettingsError

load_dotenv()

app = Flask(__name__)
app.secret_key = os.environ.get("FLASK_SECRET_KEY", os.urandom(16))

OUTPUT_ROOT = Path(os.environ.get("SPRITE_RIG_OUTPUT_DIR", Path(app.root_path) / "static" / "generated_atlases"))
MAX_DOCUMENT_BYTES = int(os.environ.get("SPRITE_RIG_MAX_DOCUMENT_BYTES", str(32 * 1024 * 1024)))

app.config["MAX_CONTENT_LENGTH"] = MAX_DOCUMENT_BYTES


def read_import_request() -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """
    Pull the document description and optional settings out of the request.

    Accepts either a JSON body {"document": {...}, "settings": {...}} (or the
    document itself as the body) or a multipart upload with a "document" file
    and an optional "settings" form field holding JSON.
    """
    upload: Optional[FileStorage] = request.files.get("document")
    if upload is not None:
        try:
            document_data = json.load(upload.stream)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DocumentError(f"Uploaded document is not valid JSON: {e}") from e
        settings_field = request.form.get("settings")
        try:
            settings_data = json.loads(settings_field) if settings_field else None
        except json.JSONDecodeError as e:
            raise SettingsError(f"Settings field is not valid JSON: {e}") from e
        return document_data, settings_data

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise DocumentError("Request body must be a JSON object or a 'document' file upload")
    if "document" in data:
        return data["document"], data.get("settings")
    return data, None


def import_dir(import_id: str) -> Path:
    return OUTPUT_ROOT / import_id


def save_import(import_id: str, result, rig_data: Dict[str, Any]) -> Path:
    """Write the atlas image, sprite table and rig data for an import."""
    out_dir = import_dir(import_id)
    out_dir.mkdir(parents=True, exist_ok=True)

    result.atlas.save(out_dir / "atlas.png", "PNG")

    sprites_payload = {
        "atlas": "atlas.png",
        "size": result.atlas_size,
        "sprites": [sprite.to_dict() for sprite in result.sprites],
    }
    with open(out_dir / "sprites.json", "w", encoding="utf-8") as f:
        json.dump(sprites_payload, f, indent=2)
    with open(out_dir / "rig.json", "w", encoding="utf-8") as f:
        json.dump(rig_data, f, indent=2)

    print(f"Import {import_id} saved to: {out_dir}")
    return out_dir


def target_summary(result) -> Dict[str, Any]:
    summary = {}
    for path, target in sorted(result.targets.items()):
        summary[path] = {
            "sprite_base_name": target.sprite_base_name,
            "pivot_layer": target.pivot_layer_index,
            "inherited_pivot": target.inherited_pivot,
            "layers": target.num_layers,
            "frames": sorted(target.dimensions),
        }
    return summary


@app.route("/api/import", methods=["POST"])
def import_sprite_document():
    """Import a layered document and return its sprites and rig data."""
    try:
        document_data, settings_data = read_import_request()
        settings = ImportSettings.from_env().with_overrides(settings_data)
        document = load_document(document_data)
    except (DocumentError, SettingsError) as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = import_document(document, settings)
        rig_data = build_rig_data(result)
        import_id = uuid.uuid4().hex[:12]
        save_import(import_id, result, rig_data)
    except ImportFailed as e:
        print(f"Error importing {document.name}: {e}")
        return jsonify({"error": str(e), "stage": e.stage.value}), 500
    except OSError as e:
        print(f"Error saving import for {document.name}: {e}")
        return jsonify({"error": f"Could not save import: {e}"}), 500

    return jsonify({
        "success": True,
        "import_id": import_id,
        "atlas": f"/api/imports/{import_id}/atlas.png",
        "atlas_size": result.atlas_size,
        "sprites": [sprite.to_dict() for sprite in result.sprites],
        "targets": target_summary(result),
        "rig": rig_data,
    })


@app.route("/api/imports/<import_id>/atlas.png", methods=["GET"])
def get_atlas_image(import_id):
    """Serve the atlas image of a finished import."""
    atlas_path = import_dir(import_id) / "atlas.png"
    if not import_id.isalnum() or not atlas_path.exists():
        return jsonify({"error": f"Import not found: {import_id}"}), 404
    return send_file(atlas_path, mimetype="image/png")


@app.route("/export-atlas/<import_id>", methods=["GET"])
def export_atlas(import_id):
    """Export atlas image, sprite table and rig data as a ZIP file."""
    out_dir = import_dir(import_id)
    if not import_id.isalnum() or not out_dir.exists():
        return jsonify({"error": f"Import not found: {import_id}"}), 404

    try:
        zip_path = out_dir / f"{import_id}_atlas.zip"
        with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zipf:
            for file_path in out_dir.glob("*"):
                if file_path.is_file() and file_path != zip_path:
                    zipf.write(file_path, file_path.name)

        return send_file(
            zip_path,
            as_attachment=True,
            download_name=f"{import_id}_atlas.zip",
            mimetype="application/zip",
        )
    except OSError as e:
        print(f"Error exporting import {import_id}: {e}")
        return jsonify({"error": f"Export failed: {e}"}), 500


if __name__ == "__main__":
    port = int(os.environ.get("PORT", "5006"))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "0") == "1")
