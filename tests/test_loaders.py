"""Tests for perch.loaders — normalizing module sources into loaders."""

from types import SimpleNamespace

import pytest

from perch.loaders import file_loader, import_loader, memoize, to_loader


class TestToLoader:
    async def test_plain_value_returned_every_call(self) -> None:
        module = SimpleNamespace(template="t")
        loader = to_loader(module)
        assert await loader() is module
        assert await loader() is module

    async def test_module_object_is_a_value(self) -> None:
        import perch.document as module

        loader = to_loader(module)
        assert await loader() is module

    async def test_sync_callable_reinvoked(self) -> None:
        calls = []

        def factory() -> dict[str, int]:
            calls.append(1)
            return {"n": len(calls)}

        loader = to_loader(factory)
        assert await loader() == {"n": 1}
        assert await loader() == {"n": 2}

    async def test_async_callable_reinvoked(self) -> None:
        calls = []

        async def factory() -> int:
            calls.append(1)
            return len(calls)

        loader = to_loader(factory)
        assert await loader() == 1
        assert await loader() == 2

    async def test_awaitable_awaited_once(self) -> None:
        calls = []

        async def fetch() -> str:
            calls.append(1)
            return "module"

        loader = to_loader(fetch())
        assert await loader() == "module"
        assert await loader() == "module"
        assert len(calls) == 1

    async def test_awaitable_failure_shared(self) -> None:
        calls = []

        async def fetch() -> str:
            calls.append(1)
            msg = "unavailable"
            raise LookupError(msg)

        loader = to_loader(fetch())
        with pytest.raises(LookupError):
            await loader()
        with pytest.raises(LookupError):
            await loader()
        assert len(calls) == 1


class TestMemoize:
    async def test_loads_once(self) -> None:
        calls = []

        def factory() -> object:
            calls.append(1)
            return object()

        loader = memoize(to_loader(factory))
        first = await loader()
        assert await loader() is first
        assert len(calls) == 1

    async def test_failures_not_cached(self) -> None:
        attempts = []

        def flaky() -> str:
            attempts.append(1)
            if len(attempts) == 1:
                msg = "first attempt fails"
                raise RuntimeError(msg)
            return "ok"

        loader = memoize(to_loader(flaky))
        with pytest.raises(RuntimeError):
            await loader()
        assert await loader() == "ok"


class TestImportLoader:
    async def test_imports_by_name(self) -> None:
        loader = import_loader("perch.document")
        module = await loader()
        assert hasattr(module, "render_head")


class TestFileLoader:
    async def test_executes_file(self, tmp_path) -> None:
        path = tmp_path / "index.py"
        path.write_text("VALUE = 1\n")
        module = await file_loader(path)()
        assert module.VALUE == 1

    async def test_cached_without_reload(self, tmp_path) -> None:
        path = tmp_path / "index.py"
        path.write_text("VALUE = 1\n")
        loader = file_loader(path)
        first = await loader()
        path.write_text("VALUE = 2\n")
        assert await loader() is first

    async def test_reload_reexecutes(self, tmp_path) -> None:
        path = tmp_path / "index.py"
        path.write_text("VALUE = 1\n")
        loader = file_loader(path, reload=True)
        assert (await loader()).VALUE == 1
        path.write_text("VALUE = 2\n")
        assert (await loader()).VALUE == 2

    async def test_missing_file_raises(self, tmp_path) -> None:
        with pytest.raises((ImportError, FileNotFoundError)):
            await file_loader(tmp_path / "missing.py")()
