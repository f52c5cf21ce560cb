from __future__ import annotations

from pathlib import Path

from contextpack.cache import ContextCache, make_cache_key
from contextpack.records import ContextResult, FileHandle


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


def _file(tmp_path: Path, name: str, body: str) -> FileHandle:
    path = tmp_path / name
    path.write_text(body, encoding="utf-8")
    return FileHandle(path)


def test_cache_key_ignores_path_order(tmp_path: Path) -> None:
    first = make_cache_key(tmp_path, ["b.py", "a.py"], {"limit": 1})
    second = make_cache_key(tmp_path, ["a.py", "b.py"], {"limit": 1})

    assert first == second
    assert first != make_cache_key(tmp_path, ["a.py", "b.py"], {"limit": 2})


def test_hit_then_stale_after_file_change(tmp_path: Path) -> None:
    handle = _file(tmp_path, "a.py", "x = 1\n")
    cache = ContextCache()
    result = ContextResult(text="context", files=["a.py"])

    cache.put("key", result, [handle])
    assert cache.get("key") == result

    handle.path.write_text("x = 1\ny = 2\n", encoding="utf-8")
    assert cache.get("key") is None
    assert cache.stats() == {"hits": 1, "misses": 1, "size": 0}


def test_entries_expire_after_ttl(tmp_path: Path) -> None:
    clock = FakeClock()
    cache = ContextCache(ttl_seconds=300, clock=clock)
    cache.put("key", ContextResult(text="context"), [_file(tmp_path, "a.py", "x\n")])

    clock.now += 299
    assert cache.get("key") is not None
    clock.now += 2
    assert cache.get("key") is None


def test_oldest_entry_is_evicted_at_capacity(tmp_path: Path) -> None:
    clock = FakeClock()
    cache = ContextCache(max_entries=2, clock=clock)
    for index, key in enumerate(("first", "second", "third")):
        clock.now += index + 1
        cache.put(key, ContextResult(text=key), [])

    assert cache.get("first") is None
    assert cache.get("second") is not None
    assert cache.get("third") is not None
    assert cache.stats()["size"] == 2


def test_clear_resets_entries_and_counters(tmp_path: Path) -> None:
    cache = ContextCache()
    cache.put("key", ContextResult(text="context"), [])
    cache.get("key")
    cache.get("other")

    cache.clear()

    assert cache.stats() == {"hits": 0, "misses": 0, "size": 0}
    assert cache.get("key") is None


def test_callers_cannot_mutate_cached_results(tmp_path: Path) -> None:
    handle = _file(tmp_path, "a.py", "x = 1\n")
    cache = ContextCache()
    result = ContextResult(
        text="context",
        files=["a.py"],
        sections=[{"label": "header", "included": True, "truncated": False, "chars": 7}],
    )
    cache.put("key", result, [handle])
    result.files.append("late.py")

    served = cache.get("key")
    served.files.clear()
    served.sections[0]["chars"] = 0

    again = cache.get("key")
    assert again.files == ["a.py"]
    assert again.sections[0]["chars"] == 7
