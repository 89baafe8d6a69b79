from __future__ import annotations

import json
import os
import threading

import pytest

from adapters.json_state_store import JsonStateStore
from core.models import ChatPreference


def test_get_unknown_chat_returns_defaults_and_is_idempotent(tmp_path) -> None:
    store = JsonStateStore.load(str(tmp_path / "state.json"))

    first = store.get(42)
    second = store.get(42)

    assert first == ChatPreference(enabled=True, silent=False)
    assert first is second
    assert list(store.snapshot()) == [42]


def test_mutations_are_visible_through_shared_instance(tmp_path) -> None:
    store = JsonStateStore.load(str(tmp_path / "state.json"))

    store.get(7).silent = True

    assert store.get(7).silent is True


def test_update_persists_and_reloads(tmp_path) -> None:
    path = str(tmp_path / "state.json")
    store = JsonStateStore.load(path)

    for enabled in (False, True, False):
        store.update(42, enabled=enabled)
    store.update(42, silent=True)

    reloaded = JsonStateStore.load(path)
    assert reloaded.get(42) == ChatPreference(enabled=False, silent=True)


def test_saved_file_is_indented_json_with_chat_states(tmp_path) -> None:
    path = tmp_path / "state.json"
    store = JsonStateStore.load(str(path))
    store.update(-100123, enabled=False)

    text = path.read_text(encoding="utf-8")
    assert "\n  " in text
    assert json.loads(text) == {"chat_states": {"-100123": {"enabled": False, "silent": False}}}


def test_missing_file_loads_empty_store(tmp_path) -> None:
    store = JsonStateStore.load(str(tmp_path / "absent" / "state.json"))

    assert store.snapshot() == {}


@pytest.mark.parametrize(
    "content",
    [b"\x00\xff\xfegarbage\x81", b"{not json", b"[1, 2, 3]", b'{"chat_states": {"1": 5}}'],
)
def test_corrupted_file_loads_empty_store(tmp_path, content: bytes) -> None:
    path = tmp_path / "state.json"
    path.write_bytes(content)

    store = JsonStateStore.load(str(path))

    assert store.snapshot() == {}
    # The store remains usable and overwrites the corrupt file on save.
    store.update(1, enabled=False)
    assert JsonStateStore.load(str(path)).get(1).enabled is False


def test_non_numeric_chat_ids_round_trip(tmp_path) -> None:
    path = str(tmp_path / "state.json")
    store = JsonStateStore.load(path)
    store.update("@channel", silent=True)

    assert JsonStateStore.load(path).snapshot() == {"@channel": ChatPreference(enabled=True, silent=True)}


def test_save_failure_keeps_in_memory_state(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    store = JsonStateStore.load(str(blocker / "state.json"))

    with pytest.raises(OSError):
        store.update(5, enabled=False)

    assert store.get(5).enabled is False


def test_save_leaves_no_temp_files(tmp_path) -> None:
    path = tmp_path / "state.json"
    store = JsonStateStore.load(str(path))
    store.update(1, enabled=False)
    store.update(2, silent=True)

    assert sorted(os.listdir(tmp_path)) == ["state.json"]


def test_concurrent_updates_keep_one_record_per_chat(tmp_path) -> None:
    path = str(tmp_path / "state.json")
    store = JsonStateStore.load(path)
    errors: list[BaseException] = []
    start = threading.Barrier(8)

    def worker(chat_id: int) -> None:
        try:
            start.wait()
            for _ in range(20):
                store.update(chat_id, enabled=False)
                store.update(0, silent=chat_id % 2 == 0)
        except BaseException as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(chat_id,)) for chat_id in range(1, 9)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    snapshot = store.snapshot()
    assert sorted(snapshot) == list(range(9))
    assert all(not snapshot[chat_id].enabled for chat_id in range(1, 9))
    assert JsonStateStore.load(path).snapshot() == snapshot
