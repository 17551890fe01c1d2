from __future__ import annotations

from imgsqueeze.marker import MARKER_KEY, has_marker, with_marker


def test_has_marker():
    assert not has_marker({})
    assert not has_marker({"owner": "web"})
    assert has_marker({"optimized": "true"})
    assert has_marker({"Optimized": "false"})


def test_with_marker_keeps_existing_entries_and_does_not_mutate_input():
    original = {"owner": "web", "Optimized": "stale"}
    tagged = with_marker(original)

    assert tagged == {"owner": "web", MARKER_KEY: "true"}
    assert original == {"owner": "web", "Optimized": "stale"}
