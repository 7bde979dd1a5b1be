import asyncio
import json

import pytest

from app.core.exceptions import ConcurrencyViolation, StorageCorruption
from app.db.entity_store import EntityStore
from app.models import ClientsDocument, TokensDocument


def _store(tmp_path, name: str = "tokens.json") -> EntityStore[TokensDocument]:
    return EntityStore(tmp_path / name, TokensDocument)


@pytest.mark.asyncio
async def test_missing_file_is_created_with_defaults(tmp_path) -> None:
    store = _store(tmp_path)

    document = await store.read()

    assert document == TokensDocument()
    assert (tmp_path / "tokens.json").exists()
    assert json.loads((tmp_path / "tokens.json").read_text())["blacklisted_tokens"] == []


@pytest.mark.asyncio
async def test_read_returns_independent_copy(tmp_path) -> None:
    store = _store(tmp_path)
    document = await store.read()
    document.blacklisted_tokens.add("leaked")

    assert "leaked" not in (await store.read()).blacklisted_tokens


@pytest.mark.asyncio
async def test_write_persists_whole_document(tmp_path) -> None:
    store = _store(tmp_path)
    await store.write(TokensDocument(blacklisted_tokens={"a", "b"}))

    reopened = _store(tmp_path)
    assert (await reopened.read()).blacklisted_tokens == {"a", "b"}


@pytest.mark.asyncio
async def test_write_rejects_wrong_document_type(tmp_path) -> None:
    store = _store(tmp_path)
    with pytest.raises(TypeError):
        await store.write(ClientsDocument())


@pytest.mark.asyncio
async def test_concurrent_updates_are_not_lost(tmp_path) -> None:
    store = _store(tmp_path)

    def _adder(token: str):
        def _apply(document: TokensDocument) -> TokensDocument:
            document.blacklisted_tokens.add(token)
            return document

        return _apply

    await asyncio.gather(*(store.update(_adder(f"token-{i}")) for i in range(50)))

    document = await store.read()
    assert len(document.blacklisted_tokens) == 50
    on_disk = TokensDocument.model_validate_json((tmp_path / "tokens.json").read_text())
    assert on_disk == document


@pytest.mark.asyncio
async def test_mutate_returns_result_and_persists(tmp_path) -> None:
    store = _store(tmp_path)

    def _apply(document: TokensDocument):
        document.blacklisted_tokens.add("x")
        return document, len(document.blacklisted_tokens)

    assert await store.mutate(_apply) == 1
    assert (await store.read()).blacklisted_tokens == {"x"}


@pytest.mark.asyncio
async def test_failed_mutation_leaves_document_untouched(tmp_path) -> None:
    store = _store(tmp_path)
    await store.write(TokensDocument(blacklisted_tokens={"kept"}))

    def _explode(document: TokensDocument):
        document.blacklisted_tokens.clear()
        raise ValueError("boom")

    with pytest.raises(ValueError):
        await store.update(_explode)

    assert (await store.read()).blacklisted_tokens == {"kept"}


@pytest.mark.asyncio
async def test_async_update_function_is_a_concurrency_violation(tmp_path) -> None:
    store = _store(tmp_path)

    async def _suspending(document: TokensDocument) -> TokensDocument:
        await asyncio.sleep(0)
        return document

    with pytest.raises(ConcurrencyViolation):
        await store.update(_suspending)

    # Lock is released again afterwards.
    assert await store.read() == TokensDocument()


@pytest.mark.asyncio
async def test_corrupt_file_raises_storage_corruption(tmp_path) -> None:
    path = tmp_path / "tokens.json"
    path.write_text("{not json", encoding="utf-8")
    store = _store(tmp_path)

    with pytest.raises(StorageCorruption) as excinfo:
        await store.read()

    assert excinfo.value.path == str(path)
    # Never silently replaced with defaults.
    assert path.read_text(encoding="utf-8") == "{not json"


@pytest.mark.asyncio
async def test_undecodable_bytes_raise_storage_corruption(tmp_path) -> None:
    path = tmp_path / "tokens.json"
    raw = b'\xff\xfe{"blacklisted_tokens": []}'
    path.write_bytes(raw)
    store = _store(tmp_path)

    with pytest.raises(StorageCorruption):
        await store.read()

    assert path.read_bytes() == raw


@pytest.mark.asyncio
async def test_close_drops_cache_and_reloads_from_disk(tmp_path) -> None:
    store = _store(tmp_path)
    await store.write(TokensDocument(blacklisted_tokens={"before"}))
    store.close()

    (tmp_path / "tokens.json").write_text(
        TokensDocument(blacklisted_tokens={"after"}).model_dump_json(), encoding="utf-8"
    )
    assert (await store.read()).blacklisted_tokens == {"after"}


@pytest.mark.asyncio
async def test_close_during_mutation_is_rejected(tmp_path) -> None:
    store = _store(tmp_path)
    await store.read()
    await store._lock.acquire()
    try:
        with pytest.raises(ConcurrencyViolation):
            store.close()
    finally:
        store._lock.release()
