"""Pytest configuration and shared fixtures."""

import asyncio
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import jwt
import pytest
from fastapi.testclient import TestClient

from photoai.core import AuthGate, JobCorrelationWorkflow
from photoai.main import create_app
from photoai.models.enums import JobStatus, WebhookKind
from photoai.models.schemas import (
    ModelRecord,
    OutputImageRecord,
    PackPromptRecord,
    PackRecord,
    PresignedUpload,
    SubmissionReceipt,
    WebhookInboxEntry,
)
from photoai.storage.base import BaseStorage
from photoai.utils.config import Config
from photoai.utils.errors import ProviderUnavailable, StorageError

JWT_SECRET = "test-secret-with-at-least-32-bytes!!"
USER_ID = "user_alice"
OTHER_USER_ID = "user_bob"


# ==================== FAKES ====================

class InMemoryStorage(BaseStorage):
    """Dict-backed storage with the same conditional-update semantics as Supabase."""

    def __init__(self):
        self.models: Dict[str, Dict[str, Any]] = {}
        self.images: Dict[str, Dict[str, Any]] = {}
        self.packs: Dict[str, Dict[str, Any]] = {}
        self.pack_prompts: List[Dict[str, Any]] = []
        self.inbox: List[Dict[str, Any]] = []
        self.fail_attach = False
        self._clock = 0

    def _stamp(self, row: Dict[str, Any]) -> Dict[str, Any]:
        # Strictly increasing timestamps keep ordering deterministic
        self._clock += 1
        now = datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self._clock)
        row.setdefault("created_at", now)
        row["updated_at"] = now
        return row

    # models

    async def create_model(self, data):
        row = self._stamp({"id": str(uuid.uuid4()), "open": False, **data})
        self.models[row["id"]] = row
        return ModelRecord(**row)

    async def get_model(self, model_id):
        row = self.models.get(model_id)
        return ModelRecord(**row) if row else None

    async def attach_model_request_id(self, model_id, request_id):
        row = self.models.get(model_id)
        if row is None or row.get("fal_ai_request_id"):
            raise StorageError(f"Model {model_id} missing or already has a request id")
        row["fal_ai_request_id"] = request_id
        return ModelRecord(**self._stamp(row))

    async def delete_model(self, model_id):
        self.models.pop(model_id, None)

    async def find_models_by_request_id(self, request_id):
        return [ModelRecord(**r) for r in self.models.values() if r.get("fal_ai_request_id") == request_id]

    async def complete_models(self, request_id, tensor_path, thumbnail):
        changed = []
        for row in self.models.values():
            if row.get("fal_ai_request_id") == request_id and row["training_status"] == JobStatus.PENDING.value:
                row.update(training_status=JobStatus.GENERATED.value, tensor_path=tensor_path, thumbnail=thumbnail)
                changed.append(ModelRecord(**self._stamp(row)))
        return changed

    async def list_visible_models(self, user_id):
        return [ModelRecord(**r) for r in self.models.values() if r["user_id"] == user_id or r.get("open")]

    # output images

    async def create_output_images(self, rows):
        created = []
        for data in rows:
            row = self._stamp({"id": str(uuid.uuid4()), **data})
            self.images[row["id"]] = row
            created.append(OutputImageRecord(**row))
        return created

    async def attach_output_image_request_ids(self, images, request_ids):
        if self.fail_attach:
            raise StorageError("attach output image request ids failed")
        attached = []
        for image, request_id in zip(images, request_ids):
            row = self.images[image.id]
            row["fal_ai_request_id"] = request_id
            attached.append(OutputImageRecord(**self._stamp(row)))
        return attached

    async def delete_output_images(self, image_ids):
        for image_id in image_ids:
            self.images.pop(image_id, None)

    async def find_output_images_by_request_id(self, request_id):
        return [OutputImageRecord(**r) for r in self.images.values() if r.get("fal_ai_request_id") == request_id]

    async def complete_output_images(self, request_id, image_url):
        changed = []
        for row in self.images.values():
            if row.get("fal_ai_request_id") == request_id and row["status"] == JobStatus.PENDING.value:
                row.update(status=JobStatus.GENERATED.value, image_url=image_url)
                changed.append(OutputImageRecord(**self._stamp(row)))
        return changed

    async def list_output_images(self, user_id, image_ids, offset, limit):
        rows = [
            r for r in self.images.values()
            if r["user_id"] == user_id and (image_ids is None or r["id"] in image_ids)
        ]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return [OutputImageRecord(**r) for r in rows[offset:offset + limit]]

    # packs

    def add_pack(self, name: str, prompts: List[str]) -> str:
        pack_id = str(uuid.uuid4())
        self.packs[pack_id] = {"id": pack_id, "name": name}
        for prompt in prompts:
            self.pack_prompts.append({"id": str(uuid.uuid4()), "pack_id": pack_id, "prompt": prompt})
        return pack_id

    async def list_packs(self):
        return [PackRecord(**p) for p in self.packs.values()]

    async def get_pack(self, pack_id):
        row = self.packs.get(pack_id)
        return PackRecord(**row) if row else None

    async def list_pack_prompts(self, pack_id):
        return [PackPromptRecord(**p) for p in self.pack_prompts if p["pack_id"] == pack_id]

    # inbox

    async def record_webhook(self, kind, request_id, payload):
        entry = {"id": str(uuid.uuid4()), "kind": kind.value, "request_id": request_id, "payload": dict(payload)}
        self.inbox.append(entry)
        return WebhookInboxEntry(**entry)

    async def take_webhooks(self, kind, request_ids):
        taken = [e for e in self.inbox if e["kind"] == kind.value and e["request_id"] in request_ids]
        self.inbox = [e for e in self.inbox if e not in taken]
        return [WebhookInboxEntry(**e) for e in taken]


class FakeFalClient:
    """
    Scripted stand-in for FalAIClient.

    Request ids are handed out in call order (``req-1``, ``req-2``, ...).
    ``delays`` and ``fail_prompts`` are keyed by prompt; ``before_return``
    runs after an id is assigned and before the receipt is returned, which
    is where a fast webhook would land.
    """

    def __init__(self):
        self.counter = 0
        self.training_calls: List[tuple] = []
        self.generation_calls: List[tuple] = []
        self.sync_calls: List[str] = []
        self.cancelled: List[str] = []
        self.delays: Dict[str, float] = {}
        self.fail_prompts = set()
        self.training_error: Optional[Exception] = None
        self.thumbnail_url = "thumb.png"
        self.before_return = None

    def _next_id(self) -> str:
        self.counter += 1
        return f"req-{self.counter}"

    async def submit_training(self, zip_url, job_name):
        self.training_calls.append((zip_url, job_name))
        if self.training_error:
            raise self.training_error
        request_id = self._next_id()
        if self.before_return:
            await self.before_return(WebhookKind.TRAINING, request_id)
        return SubmissionReceipt(request_id=request_id)

    async def submit_generation(self, prompt, tensor_path):
        request_id = self._next_id()
        self.generation_calls.append((prompt, tensor_path, request_id))
        try:
            await asyncio.sleep(self.delays.get(prompt, 0))
        except asyncio.CancelledError:
            self.cancelled.append(prompt)
            raise
        if prompt in self.fail_prompts:
            raise ProviderUnavailable("fal", "HTTP 503: busy", 503)
        if self.before_return:
            await self.before_return(WebhookKind.IMAGE, request_id)
        return SubmissionReceipt(request_id=request_id)

    async def generate_image_sync(self, tensor_path):
        self.sync_calls.append(tensor_path)
        return self.thumbnail_url

    def request_id_for(self, prompt: str) -> str:
        return next(rid for p, _, rid in self.generation_calls if p == prompt)


class FakeUploads:
    def presign_upload(self):
        return PresignedUpload(
            url="https://bucket.example.com/models/1700000000000_abc.zip?X-Amz-Expires=300",
            key="models/1700000000000_abc.zip",
        )


# ==================== FIXTURES ====================

@pytest.fixture
def config() -> Config:
    return Config(
        fal_key="fal-test-key",
        webhook_base_url="https://api.example.com",
        supabase_url="https://db.example.com",
        supabase_service_key="service-key",
        s3_access_key="AKIATEST",
        s3_secret_key="secret",
        bucket_name="bucket",
        auth_jwt_key=JWT_SECRET,
        auth_jwt_algorithms="HS256",
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def fal() -> FakeFalClient:
    return FakeFalClient()


@pytest.fixture
def workflow(storage, fal) -> JobCorrelationWorkflow:
    return JobCorrelationWorkflow(storage, fal)


@pytest.fixture
def app(config, storage, fal):
    return create_app(config=config, storage=storage, provider=fal, upload_gateway=FakeUploads())


@pytest.fixture
def test_client(app) -> TestClient:
    return TestClient(app)


def make_token(user_id: str = USER_ID, expires_in: int = 300, secret: str = JWT_SECRET) -> str:
    return jwt.encode(
        {"sub": user_id, "exp": int(time.time()) + expires_in},
        secret,
        algorithm="HS256",
    )


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def auth_gate() -> AuthGate:
    return AuthGate(JWT_SECRET, ["HS256"])


@pytest.fixture
def train_body() -> Dict[str, Any]:
    return {
        "name": "Jane",
        "type": "Woman",
        "age": 29,
        "ethinicity": "South Asian",
        "eyeColor": "Brown",
        "bald": False,
        "zipUrl": "s3://x/a.zip",
    }


@pytest.fixture
def trained_model(storage) -> ModelRecord:
    """A model owned by USER_ID whose training already finished."""
    row = {
        "id": str(uuid.uuid4()),
        "user_id": USER_ID,
        "name": "Jane",
        "type": "Woman",
        "age": 29,
        "ethinicity": "White",
        "eye_color": "Blue",
        "bald": False,
        "zip_url": "s3://x/a.zip",
        "fal_ai_request_id": "train-0",
        "training_status": "Generated",
        "tensor_path": "https://fal.media/lora.safetensors",
        "thumbnail": "thumb.png",
        "open": False,
    }
    storage._stamp(row)
    storage.models[row["id"]] = row
    return ModelRecord(**row)

