import pytest

from image_pipeline.application.ports.compression_gateway import CompressedResult
from image_pipeline.application.ports.metadata_repo import Collection
from image_pipeline.application.services.compression_service import CompressionService
from image_pipeline.application.services.ingestion_service import IngestionService
from image_pipeline.exceptions import GatewayError, NotFoundError, StorageError
from image_pipeline.infrastructure.compression.tinify_gateway import TinifyGateway
from image_pipeline.infrastructure.persistence.json_file.metadata_repository_json import JsonFileMetadataRepository
from image_pipeline.infrastructure.storage.local_storage import LocalStorageRepository


class FakeGateway:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def compress(self, data: bytes) -> CompressedResult:
        self.calls.append(data)
        if self.error is not None:
            raise self.error
        return self.result


class FakeAudit:
    def __init__(self):
        self.entries = []

    def log(self, operation, image_id, success=True, mode=None, details=None):
        self.entries.append((operation, image_id, success, mode))


class NoCopyStorage(LocalStorageRepository):
    def copy(self, src_key, dst_key):
        raise StorageError(f"cannot copy {src_key}")


def build(tmp_path, gateway, storage=None, audit=None):
    repo = JsonFileMetadataRepository(str(tmp_path / "db.json"))
    storage = storage or LocalStorageRepository(str(tmp_path / "public"))
    ingestion = IngestionService(metadata_repo=repo, blob_storage=storage)
    compression = CompressionService(metadata_repo=repo, blob_storage=storage, gateway=gateway, audit_logger=audit)
    return ingestion, compression, repo, storage


@pytest.mark.asyncio
async def test_unknown_id_is_not_found_and_nothing_written(tmp_path):
    gateway = FakeGateway(result=CompressedResult(b"x"))
    _, svc, repo, _ = build(tmp_path, gateway)

    with pytest.raises(NotFoundError):
        await svc.compress("does-not-exist")

    assert repo.list_all(Collection.COMPRESSED) == []
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_gateway_success_stores_compressed_bytes(tmp_path):
    gateway = FakeGateway(result=CompressedResult(b"tiny", width=640, height=480))
    audit = FakeAudit()
    ingestion, svc, repo, storage = build(tmp_path, gateway, audit=audit)
    original = await ingestion.upload("holiday.PNG", "image/png", 20, b"p" * 20)

    rec = await svc.compress(original.id)

    assert gateway.calls == [b"p" * 20]
    assert rec.id == f"{original.id}-compressed"
    assert rec.url == f"/compressed/{original.id}-compressed.PNG"
    assert rec.name == "holiday.PNG"
    assert rec.size == 4
    assert rec.format == "image/png"
    assert (rec.width, rec.height) == (640, 480)
    assert storage.get(f"compressed/{original.id}-compressed.PNG") == b"tiny"
    assert repo.list_all(Collection.COMPRESSED) == [rec]
    assert audit.entries == [("compress", original.id, True, "compressed")]


@pytest.mark.asyncio
async def test_gateway_success_without_dimensions_reports_zero(tmp_path):
    gateway = FakeGateway(result=CompressedResult(b"tiny"))
    ingestion, svc, _, _ = build(tmp_path, gateway)
    original = await ingestion.upload("a.jpg", "image/jpeg", 10, b"j" * 10)

    rec = await svc.compress(original.id)

    assert (rec.width, rec.height) == (0, 0)


@pytest.mark.asyncio
async def test_gateway_failure_falls_back_to_copy(tmp_path):
    gateway = FakeGateway(error=GatewayError("TinyPNG API error: 500 Internal Server Error"))
    audit = FakeAudit()
    ingestion, svc, repo, storage = build(tmp_path, gateway, audit=audit)
    original = await ingestion.upload("holiday.webp", "image/webp", 50, b"w" * 50)

    rec = await svc.compress(original.id)

    assert rec.id == f"{original.id}-compressed"
    assert rec.name == "holiday.webp"
    assert rec.size == original.size
    assert (rec.width, rec.height) == (0, 0)
    assert rec.format == "image/webp"
    assert storage.get(f"compressed/{original.id}-compressed.webp") == b"w" * 50
    assert repo.list_all(Collection.COMPRESSED) == [rec]
    assert audit.entries == [("compress", original.id, True, "fallback")]


@pytest.mark.asyncio
async def test_missing_api_key_triggers_fallback(tmp_path):
    ingestion, svc, _, _ = build(tmp_path, TinifyGateway(api_key=""))
    original = await ingestion.upload("a.jpg", "image/jpeg", 10, b"j" * 10)

    rec = await svc.compress(original.id)

    assert rec.size == 10
    assert (rec.width, rec.height) == (0, 0)


@pytest.mark.asyncio
async def test_compressing_twice_appends_duplicate_records(tmp_path):
    gateway = FakeGateway(result=CompressedResult(b"tiny", width=1, height=1))
    ingestion, svc, repo, _ = build(tmp_path, gateway)
    original = await ingestion.upload("a.jpg", "image/jpeg", 10, b"j" * 10)

    first = await svc.compress(original.id)
    second = await svc.compress(original.id)

    rows = repo.list_all(Collection.COMPRESSED)
    assert len(rows) == 2
    assert rows[0].id == rows[1].id == first.id == second.id


@pytest.mark.asyncio
async def test_unexpected_gateway_exception_is_not_masked(tmp_path):
    gateway = FakeGateway(error=RuntimeError("bug"))
    ingestion, svc, repo, storage = build(tmp_path, gateway)
    original = await ingestion.upload("a.jpg", "image/jpeg", 10, b"j" * 10)

    with pytest.raises(RuntimeError):
        await svc.compress(original.id)

    assert repo.list_all(Collection.COMPRESSED) == []


@pytest.mark.asyncio
async def test_fallback_copy_failure_is_storage_error(tmp_path):
    gateway = FakeGateway(error=GatewayError("down"))
    storage = NoCopyStorage(str(tmp_path / "public"))
    audit = FakeAudit()
    ingestion, svc, repo, _ = build(tmp_path, gateway, storage=storage, audit=audit)
    original = await ingestion.upload("a.jpg", "image/jpeg", 10, b"j" * 10)

    with pytest.raises(StorageError) as exc:
        await svc.compress(original.id)

    assert exc.value.image_id == original.id
    assert repo.list_all(Collection.COMPRESSED) == []
    assert audit.entries == [("compress", original.id, False, None)]


@pytest.mark.asyncio
async def test_missing_original_blob_is_storage_error(tmp_path):
    gateway = FakeGateway(result=CompressedResult(b"tiny"))
    ingestion, svc, repo, _ = build(tmp_path, gateway)
    original = await ingestion.upload("a.jpg", "image/jpeg", 10, b"j" * 10)
    (tmp_path / "public" / "uploads" / f"{original.id}.jpg").unlink()

    with pytest.raises(StorageError):
        await svc.compress(original.id)

    assert gateway.calls == []
    assert repo.list_all(Collection.COMPRESSED) == []


@pytest.mark.asyncio
async def test_two_megabyte_jpeg_scenario(tmp_path):
    two_mib = 2 * 1024 * 1024
    gateway = FakeGateway(result=CompressedResult(b"c" * (two_mib // 4), width=1200, height=800))
    ingestion, svc, _, _ = build(tmp_path, gateway)

    original = await ingestion.upload("landscape.jpg", "image/jpeg", two_mib, b"o" * two_mib)
    assert (original.size, original.format, original.width, original.height) == (two_mib, "image/jpeg", 0, 0)

    rec = await svc.compress(original.id)

    assert rec.size < two_mib
    assert rec.format == "image/jpeg"
    assert (rec.width, rec.height) == (1200, 800)


@pytest.mark.asyncio
async def test_malformed_gateway_reply_falls_back(tmp_path):
    from aiohttp import web
    from aiohttp.test_utils import TestServer

    async def shrink(request):
        return web.json_response({"output": {"url": 12345}}, status=201)

    tinify = web.Application()
    tinify.router.add_post("/shrink", shrink)
    async with TestServer(tinify) as server:
        gateway = TinifyGateway(api_key="k", base_url=str(server.make_url("/")))
        ingestion, svc, repo, _ = build(tmp_path, gateway)
        original = await ingestion.upload("a.jpg", "image/jpeg", 10, b"j" * 10)
        rec = await svc.compress(original.id)

    assert rec.size == original.size
    assert (rec.width, rec.height) == (0, 0)
    assert repo.list_all(Collection.COMPRESSED) == [rec]
