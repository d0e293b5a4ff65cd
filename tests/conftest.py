import copy
import re
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from app.api.deps import get_email_service, get_image_service, get_user_repository
from app.core.config import Settings
from app.core.exceptions import EmailDeliveryError, ImageServiceError
from app.db.user_repository import UserRepository
from app.main import create_app
from app.models.user import Avatar

AVATAR = (
    "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk"
    "YPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
RESET_LINK = re.compile(r"/password/reset/([0-9a-f]+)")


class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents

    async def to_list(self, length: Optional[int] = None):
        return self._documents if length is None else self._documents[:length]


class FakeUsersCollection:
    """
    In-memory stand-in for the motor users collection.
    Supports the queries, operators and unique email index the repository uses.
    """

    unique_fields = ("email",)

    def __init__(self):
        self.documents: List[Dict[str, Any]] = []

    @staticmethod
    def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
        for key, condition in query.items():
            value = document.get(key)
            if isinstance(condition, dict):
                for op, operand in condition.items():
                    if op != "$gt":
                        raise NotImplementedError(op)
                    if value is None or not value > operand:
                        return False
            elif value != condition:
                return False
        return True

    @staticmethod
    def _project(document: Dict[str, Any], projection: Optional[Dict[str, int]]):
        result = copy.deepcopy(document)
        for key, include in (projection or {}).items():
            if not include:
                result.pop(key, None)
        return result

    def _check_unique(self, document: Dict[str, Any]):
        for field in self.unique_fields:
            for other in self.documents:
                if other["_id"] != document["_id"] and other.get(field) == document.get(field):
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: shop.users index: {field}_unique",
                        11000,
                        {"keyValue": {field: document.get(field)}},
                    )

    def _first(self, query):
        for index, document in enumerate(self.documents):
            if self._matches(document, query):
                return index, document
        return None, None

    def _apply(self, index: int, update: Dict[str, Any]) -> Dict[str, Any]:
        updated = copy.deepcopy(self.documents[index])
        for key, value in update.get("$set", {}).items():
            updated[key] = value
        for key in update.get("$unset", {}):
            updated.pop(key, None)
        self._check_unique(updated)
        self.documents[index] = updated
        return updated

    async def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        self._check_unique(document)
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, query, projection=None):
        _, document = self._first(query)
        return None if document is None else self._project(document, projection)

    def find(self, query, projection=None):
        return FakeCursor([
            self._project(document, projection)
            for document in self.documents
            if self._matches(document, query)
        ])

    async def update_one(self, query, update):
        index, document = self._first(query)
        if document is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        self._apply(index, update)
        return SimpleNamespace(matched_count=1, modified_count=1)

    async def find_one_and_update(self, query, update, projection=None, return_document=False):
        index, document = self._first(query)
        if document is None:
            return None
        updated = self._apply(index, update)
        return self._project(updated if return_document else document, projection)

    async def delete_one(self, query):
        index, document = self._first(query)
        if document is None:
            return SimpleNamespace(deleted_count=0)
        del self.documents[index]
        return SimpleNamespace(deleted_count=1)

    def by_email(self, email: str) -> Dict[str, Any]:
        return next(doc for doc in self.documents if doc["email"] == email)


class FakeImageService:
    def __init__(self):
        self.uploaded: List[str] = []
        self.destroyed: List[str] = []
        self.fail_upload = False
        self.fail_destroy = False

    async def upload_avatar(self, image_data: str) -> Avatar:
        if self.fail_upload:
            raise ImageServiceError("Image host error: Invalid image file")
        public_id = f"avatars/img{len(self.uploaded) + 1}"
        self.uploaded.append(public_id)
        return Avatar(public_id=public_id, url=f"https://res.cloudinary.test/{public_id}.png")

    async def destroy(self, public_id: str) -> bool:
        if self.fail_destroy:
            raise ImageServiceError("Image host timeout")
        self.destroyed.append(public_id)
        return True


class FakeEmailService:
    def __init__(self):
        self.outbox: List[Dict[str, str]] = []
        self.fail = False

    async def send(self, to_email: str, subject: str, body: str) -> None:
        if self.fail:
            raise EmailDeliveryError("SMTP connection refused")
        self.outbox.append({"to": to_email, "subject": subject, "body": body})

    def last_reset_token(self) -> str:
        return RESET_LINK.search(self.outbox[-1]["body"]).group(1)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        ENVIRONMENT="development",
        JWT_SECRET="test-secret-0123456789abcdef0123456789",
        BCRYPT_ROUNDS=4,
        FRONTEND_URL="http://shop.test",
    )


@pytest.fixture
def collection():
    return FakeUsersCollection()


@pytest.fixture
def images():
    return FakeImageService()


@pytest.fixture
def mailer():
    return FakeEmailService()


@pytest.fixture
def app(settings, collection, images, mailer):
    application = create_app(settings)
    application.dependency_overrides[get_user_repository] = lambda: UserRepository(collection)
    application.dependency_overrides[get_image_service] = lambda: images
    application.dependency_overrides[get_email_service] = lambda: mailer
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


def register(client, name="Alice", email="a@x.com", password="p1", avatar=AVATAR):
    return client.post(
        "/api/v1/register",
        json={"name": name, "email": email, "password": password, "avatar": avatar},
    )


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(client, collection):
    response = register(client, name="Root", email="admin@x.com", password="adminpw")
    collection.by_email("admin@x.com")["role"] = "admin"
    client.cookies.clear()
    return response.json()["token"]
