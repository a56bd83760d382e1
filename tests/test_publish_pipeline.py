try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from dataclasses import dataclass

import pytest

from mockup_publisher.clients.sqlite_store import SQLiteStore
from mockup_publisher.core.config import EtsySettings
from mockup_publisher.core.errors import (
    AuthExpired,
    ProviderRequestFailed,
    PublishFailed,
    ValidationError,
)
from mockup_publisher.models.listing import ListingStatus, PublishMode
from mockup_publisher.services.artifact import ARTIFACT_FILENAME, ArtifactStorage
from mockup_publisher.services.publish_pipeline import (
    PublishPipeline,
    PublishRequest,
    StageStatus,
    parse_price,
)

OWNER = "owner@example.com"


@dataclass
class Metadata:
    name: str
    mime_type: str = "image/jpeg"


@dataclass
class Section:
    name: str
    content: str


class FakeDrive:
    def __init__(self, failing_metadata: set[str] | None = None) -> None:
        self.failing_metadata = failing_metadata or set()
        self.calls: list[tuple[str, str]] = []

    async def get_metadata(self, file_id: str) -> Metadata:
        self.calls.append(("metadata", file_id))
        if file_id in self.failing_metadata:
            raise ProviderRequestFailed(provider="google", status=404, body="not found")
        return Metadata(name=f"{file_id}.jpg")

    async def create_shareable_link(self, file_id: str) -> str:
        self.calls.append(("link", file_id))
        return f"https://drive.google.com/file/d/{file_id}/view"

    async def download_bytes(self, file_id: str) -> bytes:
        self.calls.append(("download", file_id))
        return f"bytes-{file_id}".encode()


class FakeEtsy:
    def __init__(
        self,
        *,
        failing_ranks: set[int] | None = None,
        policy_error: Exception | None = None,
        draft_error: Exception | None = None,
        file_error: Exception | None = None,
    ) -> None:
        self.failing_ranks = failing_ranks or set()
        self.policy_error = policy_error
        self.draft_error = draft_error
        self.file_error = file_error
        self.drafts: list[dict] = []
        self.images: list[tuple[str, int]] = []
        self.files: list[tuple[str, bytes, str]] = []

    async def get_shipping_profiles(self, shop_id: str):
        if self.policy_error:
            raise self.policy_error
        return [{"shipping_profile_id": 111}]

    async def get_return_policies(self, shop_id: str):
        if self.policy_error:
            raise self.policy_error
        return []

    async def create_draft_listing(self, shop_id: str, fields: dict) -> str:
        if self.draft_error:
            raise self.draft_error
        self.drafts.append(fields)
        return "9001"

    async def upload_image(self, shop_id, listing_id, image, rank, **kwargs):
        if rank in self.failing_ranks:
            raise ProviderRequestFailed(provider="etsy", status=500, body="image failed")
        self.images.append((listing_id, rank))
        return {}

    async def upload_digital_file(self, shop_id, listing_id, content, filename, **kwargs):
        if self.file_error:
            raise self.file_error
        self.files.append((listing_id, content, filename))
        return {}


class RecordingRenderer:
    def __init__(self) -> None:
        self.rendered: list[tuple[list, str]] = []

    def render(self, assets, *, title=None) -> bytes:
        self.rendered.append((list(assets), title))
        return b"%PDF-fake"


@pytest.fixture()
def store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "pipeline.db"))


@pytest.fixture()
def artifacts(tmp_path) -> ArtifactStorage:
    return ArtifactStorage(tmp_path / "artifacts")


@pytest.fixture()
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture()
def pipeline(store, artifacts, renderer) -> PublishPipeline:
    return PublishPipeline(
        store=store,
        artifacts=artifacts,
        etsy_settings=EtsySettings(),
        renderer=renderer,
    )


def _request(**overrides) -> PublishRequest:
    values = dict(
        file_ids=["f1"],
        title="Poster mockup",
        description="d",
        price="9.99",
        tags=["a", "b"],
    )
    values.update(overrides)
    return PublishRequest(**values)


@pytest.mark.asyncio
async def test_standalone_scenario_produces_ready_listing(pipeline, artifacts) -> None:
    result = await pipeline.publish(OWNER, _request(title="T" * 150), assets=FakeDrive())

    listing = result.listing
    assert len(listing.title) == 140
    assert listing.price == 9.99
    assert listing.tags == ["a", "b"]
    assert listing.status is ListingStatus.READY
    assert listing.marketplace_listing_id is None
    assert listing.artifact_ref is not None
    assert artifacts.load(listing.artifact_ref) == b"%PDF-fake"
    assert result.partial_failure is None
    assert [stage.stage for stage in result.stages] == [
        "validate",
        "prepare_assets",
        "build_artifact",
        "attach_and_persist",
    ]
    assert all(stage.status is StageStatus.SUCCESS for stage in result.stages)


@pytest.mark.asyncio
async def test_title_is_truncated_to_first_140_characters(pipeline) -> None:
    title = "".join(chr(ord("a") + index % 26) for index in range(200))

    result = await pipeline.publish(OWNER, _request(title=title), assets=FakeDrive())

    assert result.listing.title == title[:140]


@pytest.mark.asyncio
async def test_marketplace_upload_failure_keeps_asset_in_package(
    pipeline, renderer, store
) -> None:
    etsy = FakeEtsy(failing_ranks={2})

    result = await pipeline.publish(
        OWNER,
        _request(file_ids=["f1", "f2", "f3"], mode=PublishMode.MARKETPLACE),
        assets=FakeDrive(),
        marketplace=etsy,
        shop_id="shop-1",
    )

    assert result.listing.status is ListingStatus.DRAFT
    assert result.listing.marketplace_listing_id == "9001"
    assert etsy.images == [("9001", 1), ("9001", 3)]
    packaged, title = renderer.rendered[0]
    assert [asset.file_id for asset in packaged] == ["f1", "f2", "f3"]
    assert title == "Poster mockup"
    assert [(failure.file_id, failure.rank) for failure in result.partial_failure.failures] == [
        ("f2", 2)
    ]
    assert etsy.files == [("9001", b"%PDF-fake", ARTIFACT_FILENAME)]
    assert len(result.listing.asset_references) == 3
    assert store.get_listing(result.listing.id, OWNER)["marketplace_listing_id"] == "9001"


@pytest.mark.asyncio
async def test_marketplace_draft_uses_policies_and_taxonomy_fallback(pipeline) -> None:
    etsy = FakeEtsy()

    await pipeline.publish(
        OWNER,
        _request(mode=PublishMode.MARKETPLACE, tags=["  Wall Art ", "X" * 25]),
        assets=FakeDrive(),
        marketplace=etsy,
        shop_id="shop-1",
    )

    draft = etsy.drafts[0]
    assert draft["taxonomy_id"] == 2322
    assert draft["shipping_profile_id"] == 111
    assert "return_policy_id" not in draft
    assert draft["tags"] == ["wall art", "x" * 20]
    assert draft["price"] == 9.99
    assert draft["type"] == "download"


@pytest.mark.asyncio
async def test_policy_lookup_failures_are_tolerated(pipeline) -> None:
    etsy = FakeEtsy(policy_error=ProviderRequestFailed(provider="etsy", status=403, body=""))

    result = await pipeline.publish(
        OWNER,
        _request(mode=PublishMode.MARKETPLACE, taxonomy_id=1234),
        assets=FakeDrive(),
        marketplace=etsy,
        shop_id="shop-1",
    )

    assert result.listing.status is ListingStatus.DRAFT
    assert "shipping_profile_id" not in etsy.drafts[0]
    assert etsy.drafts[0]["taxonomy_id"] == 1234


@pytest.mark.asyncio
async def test_validation_fails_before_any_network_call(pipeline) -> None:
    drive = FakeDrive()

    for bad in (
        _request(file_ids=[]),
        _request(title=""),
        _request(description=None),
        _request(price="0"),
        _request(price="-3"),
        _request(price="free"),
        _request(price=None),
    ):
        with pytest.raises(ValidationError):
            await pipeline.publish(OWNER, bad, assets=drive)

    assert drive.calls == []


@pytest.mark.asyncio
async def test_marketplace_mode_requires_connected_shop(pipeline) -> None:
    drive = FakeDrive()

    for marketplace, shop_id in ((FakeEtsy(), None), (FakeEtsy(), ""), (None, "shop-1")):
        with pytest.raises(ValidationError, match="Etsy shop"):
            await pipeline.publish(
                OWNER,
                _request(mode=PublishMode.MARKETPLACE),
                assets=drive,
                marketplace=marketplace,
                shop_id=shop_id,
            )
    assert drive.calls == []


@pytest.mark.asyncio
async def test_template_sections_are_appended_to_description(pipeline) -> None:
    result = await pipeline.publish(
        OWNER,
        _request(sections=[Section("Instant download", "Files arrive by PDF")]),
        assets=FakeDrive(),
    )

    assert result.listing.description.startswith("d\n\n")
    assert "INSTANT DOWNLOAD" in result.listing.description


@pytest.mark.asyncio
async def test_asset_preparation_failure_is_fatal(pipeline, store) -> None:
    with pytest.raises(PublishFailed) as excinfo:
        await pipeline.publish(
            OWNER, _request(file_ids=["f1", "missing"]), assets=FakeDrive({"missing"})
        )

    error = excinfo.value
    assert error.stage == "prepare_assets"
    assert error.outcome == StageStatus.FATAL.value
    assert error.marketplace_listing_id is None
    assert store.list_listings(OWNER) == []


@pytest.mark.asyncio
async def test_retryable_draft_failure_is_classified(pipeline) -> None:
    etsy = FakeEtsy(draft_error=ProviderRequestFailed(provider="etsy", status=503, body=""))

    with pytest.raises(PublishFailed) as excinfo:
        await pipeline.publish(
            OWNER,
            _request(mode=PublishMode.MARKETPLACE),
            assets=FakeDrive(),
            marketplace=etsy,
            shop_id="shop-1",
        )

    assert excinfo.value.stage == "create_draft"
    assert excinfo.value.outcome == StageStatus.RETRYABLE.value
    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_attach_failure_reports_orphaned_draft(pipeline, store) -> None:
    etsy = FakeEtsy(file_error=AuthExpired("etsy expired", provider="etsy"))

    with pytest.raises(PublishFailed) as excinfo:
        await pipeline.publish(
            OWNER,
            _request(mode=PublishMode.MARKETPLACE),
            assets=FakeDrive(),
            marketplace=etsy,
            shop_id="shop-1",
        )

    error = excinfo.value
    assert error.stage == "attach_and_persist"
    assert error.outcome == StageStatus.FATAL.value
    assert error.marketplace_listing_id == "9001"
    assert error.status_code == 401
    assert error.to_dict()["marketplace_listing_id"] == "9001"
    assert store.list_listings(OWNER) == []


@pytest.mark.parametrize(
    ("raw", "expected"), [("9.99", 9.99), (5, 5.0), (" 12.50 ", 12.5), (0.5, 0.5)]
)
def test_parse_price_accepts_numbers_and_numeric_strings(raw, expected) -> None:
    assert parse_price(raw) == expected


@pytest.mark.parametrize("raw", ["nan", "inf", True, "", "  "])
def test_parse_price_rejects_non_prices(raw) -> None:
    with pytest.raises(ValidationError):
        parse_price(raw)
