# tests/smoke_test_theme_store.py
"""ThemeStore (문항별 결과 저장 + 편집 적용 + 세션 JSON) smoke test"""
import sys, os, json
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.edit_ops import decode_edit_batch
from models.theme import ResultMarker, Theme
from services.errors import EditRequestError
from services.theme_store import ThemeStore, marker_summary


def _store():
    store = ThemeStore()
    store.set_results({
        "Q1": [Theme(label="A", participant_ids=["1"]), Theme(label="B", participant_ids=["2"]),
               Theme(label="C", participant_ids=["3"])],
        "Q2": ResultMarker(error="HTTP 429 rate limited"),
    })
    return store


def test_basic_access():
    store = _store()
    assert len(store) == 2
    assert "Q1" in store
    assert store.questions() == ["Q1", "Q2"]
    assert [t.label for t in store.themes("Q1")] == ["A", "B", "C"]
    try:
        store.themes("Q2")
        assert False, "Expected EditRequestError for marker"
    except EditRequestError:
        pass
    assert marker_summary(store.get("Q1")) == "3 themes"
    assert marker_summary(store.get("Q2")) == "Error: HTTP 429 rate limited"
    print("  [PASS] Store access")


def test_apply_edit_batch_replaces_list():
    store = _store()
    before = store.themes("Q1")
    store.selection.set_selected("Q1", before[0], True)
    store.selection.set_selected("Q1", before[2], True)

    result = store.apply_edit_batch("Q1", decode_edit_batch([{"op": "delete", "indices": [0]}]))
    assert result.changed
    after = store.themes("Q1")
    assert [t.label for t in after] == ["B", "C"]
    assert [t.label for t in before] == ["A", "B", "C"]
    assert store.selection.selected_indices("Q1", after) == [1]
    assert store.selection.selected_ids("Q1") == {before[2].theme_id}
    print("  [PASS] apply_edit_batch() swaps list + prunes selection")


def test_apply_noop_batch_keeps_list():
    store = _store()
    before = store.themes("Q1")
    result = store.apply_edit_batch("Q1", [{"op": "replace", "index": 42, "theme": {}}])
    assert not result.changed
    assert store.themes("Q1") is before
    print("  [PASS] Fully skipped batch leaves list untouched")


def test_set_result_forgets_selection():
    store = _store()
    themes = store.themes("Q1")
    store.selection.select_all("Q1", themes)
    store.set_result("Q1", [Theme(label="Fresh")])
    assert store.selection.selected_ids("Q1") == set()
    store.clear()
    assert len(store) == 0
    print("  [PASS] New extraction resets selection")


def test_session_json():
    store = _store()
    data = json.loads(store.to_json_bytes().decode("utf-8"))
    assert data["version"] == 1
    assert data["results"]["Q1"][0] == {
        "ThemeLabel": "A", "Definition": "", "RepresentativeKeywords": [], "ParticipantID": ["1"],
    }
    assert data["results"]["Q2"] == {"_error": "HTTP 429 rate limited"}

    restored = ThemeStore.from_json_dict(data)
    assert [t.label for t in restored.themes("Q1")] == ["A", "B", "C"]
    assert isinstance(restored.get("Q2"), ResultMarker)
    assert restored.get("Q2").error == "HTTP 429 rate limited"
    print("  [PASS] Session JSON save/load")


if __name__ == "__main__":
    print("Running theme store smoke tests...")
    test_basic_access()
    test_apply_edit_batch_replaces_list()
    test_apply_noop_batch_keeps_list()
    test_set_result_forgets_selection()
    test_session_json()
    print("\nAll theme store tests passed!")
