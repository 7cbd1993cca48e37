import logging

import pytest

from sprite_rig.targets import (
    ROOT_PATH,
    TargetRegistry,
    TargetResolutionError,
    calculate_targets,
    parent_path,
    sprite_base_name_for,
)

from helpers import content, group, make_document, pivot


def test_layer_without_params_renders_to_parent_target():
    doc = make_document([group(0, "arm", params=["arm"]), content(1, "skin", parent=0, level=1)], [])
    registry = TargetRegistry(doc)

    assert registry.resolve(doc.layers[0]) == "/arm"
    assert registry.resolve(doc.layers[1]) == "/arm"
    assert doc.layers[1].target_path == "/arm"
    assert registry["/arm"].num_layers == 2


def test_top_level_layer_without_params_is_root():
    doc = make_document([content(0, "body")], [])
    registry = TargetRegistry(doc)

    assert registry.resolve(doc.layers[0]) == ROOT_PATH
    assert registry.root.num_layers == 1


def test_absolute_path_trims_single_trailing_slash():
    doc = make_document([
        group(0, "body", params=["body"]),
        content(1, "hat", parent=0, params=["/head/hat/"]),
    ], [])
    registry = TargetRegistry(doc)
    registry.resolve(doc.layers[0])

    assert registry.resolve(doc.layers[1]) == "/head/hat"


def test_relative_path_appends_to_parent_path():
    doc = make_document([
        group(0, "body", params=["body"]),
        group(1, "arm", parent=0, params=["arm l/"]),
        content(2, "hand", parent=1, params=["hand"]),
    ], [])
    registry = TargetRegistry(doc)
    paths = [registry.resolve(layer) for layer in doc.layers]

    assert paths == ["/body", "/body/arm l", "/body/arm l/hand"]
    assert registry["/body/arm l"].sprite_base_name == "body.arm l"


def test_unresolved_parent_fails_loudly():
    doc = make_document([group(0, "arm", params=["arm"]), content(1, "skin", parent=0)], [])
    registry = TargetRegistry(doc)

    with pytest.raises(TargetResolutionError):
        registry.resolve(doc.layers[1])


def test_missing_parent_fails_loudly():
    doc = make_document([content(1, "skin", parent=7)], [])
    registry = TargetRegistry(doc)

    with pytest.raises(TargetResolutionError):
        registry.resolve(doc.layers[0])


def test_layer_cannot_change_path():
    doc = make_document([content(0, "skin", params=["a"])], [])
    registry = TargetRegistry(doc)
    registry.resolve(doc.layers[0])
    doc.layers[0].parameters = ["b"]

    with pytest.raises(TargetResolutionError):
        registry.resolve(doc.layers[0])


def test_paths_are_case_sensitive():
    doc = make_document([content(0, "a", params=["/Arm"]), content(1, "b", params=["/arm"])], [])
    registry = TargetRegistry(doc)
    for layer in doc.layers:
        registry.resolve(layer)

    assert "/Arm" in registry and "/arm" in registry
    assert len(registry) == 3


def test_second_pivot_layer_is_ignored(caplog):
    doc = make_document([content(0, "body"), pivot(1), pivot(2, name="@pivot 2")], [])
    registry = TargetRegistry(doc)

    with caplog.at_level(logging.WARNING, logger="sprite_rig.targets"):
        calculate_targets(doc, registry)

    assert registry.root.num_pivots == 1
    assert registry.ignored_pivot_layers == [2]
    assert "already has a pivot" in caplog.text


def test_pivot_without_content_layers_warns(caplog):
    doc = make_document([content(0, "body"), pivot(1, params=["/ghost"])], [])
    registry = TargetRegistry(doc)

    with caplog.at_level(logging.WARNING, logger="sprite_rig.targets"):
        calculate_targets(doc, registry)

    assert "/ghost" in registry
    assert "has no content layers" in caplog.text


def test_calculate_targets_skips_bad_layers(caplog):
    doc = make_document([content(0, "body"), content(1, "orphan", parent=42)], [])
    registry = TargetRegistry(doc)

    with caplog.at_level(logging.WARNING, logger="sprite_rig.targets"):
        calculate_targets(doc, registry)

    assert registry.path_of(1) is None
    assert "Skipping layer" in caplog.text


def test_find_parent_target_skips_unregistered_segments():
    doc = make_document([
        content(0, "a", params=["/a"]),
        content(1, "deep", params=["/a/b/c/d"]),
    ], [])
    registry = TargetRegistry(doc)
    for layer in doc.layers:
        registry.resolve(layer)

    assert registry.find_parent_target("/a/b/c/d").path == "/a"
    assert registry.find_parent_target("/a").path == ROOT_PATH
    assert registry.find_parent_target(ROOT_PATH).path == ROOT_PATH
    assert registry.find_parent_target("/x/y").path == ROOT_PATH


def test_path_helpers():
    assert parent_path("/a/b") == "/a"
    assert parent_path("/a") == ROOT_PATH
    assert parent_path(ROOT_PATH) == ROOT_PATH
    assert sprite_base_name_for("/body/arm") == "body.arm"


def test_root_sprite_name_defaults_to_document_name():
    doc = make_document([], [], name="knight")
    assert TargetRegistry(doc).root.sprite_base_name == "knight"
    assert TargetRegistry(doc, root_name="hero").root.sprite_base_name == "hero"


def test_empty_relative_parameter_means_parent_target():
    doc = make_document([
        group(0, "arm", params=["arm"]),
        content(1, "skin", parent=0, params=[""]),
        content(2, "tail", parent=0, params=["tip/"]),
    ], [])
    registry = TargetRegistry(doc)
    paths = [registry.resolve(layer) for layer in doc.layers]

    assert paths == ["/arm", "/arm", "/arm/tip"]
    assert "/arm/" not in registry
