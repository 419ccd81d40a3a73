"""Firestore-backed reading progress.

Stores one document per uploaded file:
- `progress/{document_key}` - `{"page_index": int, "updated_at": timestamp}`
"""

import base64
import json
import logging
import os
import time
from datetime import UTC, datetime
from typing import Any

import firebase_admin
from firebase_admin import credentials
from google.cloud.firestore_v1 import AsyncClient
from google.oauth2 import service_account

from config import get_settings
from db.progress import ProgressStore, ProgressStoreError, validate_page_index

logger = logging.getLogger(__name__)


def _load_firebase_credentials(creds_value: str) -> dict:
    """Load Firebase credentials from JSON string, file path, or base64."""
    if os.path.isfile(creds_value):
        with open(creds_value) as f:
            return json.load(f)

    try:
        return json.loads(creds_value)
    except json.JSONDecodeError:
        pass

    try:
        decoded = base64.b64decode(creds_value).decode("utf-8")
        return json.loads(decoded)
    except (ValueError, UnicodeDecodeError):
        pass

    raise ValueError("FIREBASE_CREDENTIALS is not valid JSON, file path, or base64")


class FirestoreProgressStore(ProgressStore):
    """Reading progress in Firestore (singleton client)."""

    _initialized: bool = False
    _db: AsyncClient | None = None

    def __init__(self, collection: str | None = None) -> None:
        """Initialize Firestore client once per process."""
        settings = get_settings()
        self.collection = collection or settings.progress_collection

        if FirestoreProgressStore._initialized:
            self.db = FirestoreProgressStore._db
            return

        try:
            creds_dict = _load_firebase_credentials(settings.firebase_credentials or "")

            if not firebase_admin._apps:
                cred = credentials.Certificate(creds_dict)
                firebase_admin.initialize_app(cred)

            gcp_credentials = service_account.Credentials.from_service_account_info(
                creds_dict
            )

            FirestoreProgressStore._db = AsyncClient(
                project=creds_dict.get("project_id"),
                credentials=gcp_credentials,
            )
            self.db = FirestoreProgressStore._db

            FirestoreProgressStore._initialized = True
            logger.info("Firestore client initialized successfully")
        except Exception as e:
            logger.error("Failed to initialize Firestore: %s", e)
            raise

    async def get_saved_page(self, document_key: str) -> int | None:
        """Read the saved page index for a document."""
        try:
            doc = await self.db.collection(self.collection).document(document_key).get()
        except Exception as e:
            logger.error("Failed to read progress: %s", e)
            raise ProgressStoreError(f"Failed to read progress: {e}") from e

        if not doc.exists:
            return None

        page_index = (doc.to_dict() or {}).get("page_index")
        if isinstance(page_index, int) and page_index >= 0:
            return page_index
        return None

    async def save_progress(self, document_key: str, page_index: int) -> None:
        """Overwrite the saved page index for a document."""
        validate_page_index(page_index)
        try:
            doc_ref = self.db.collection(self.collection).document(document_key)
            await doc_ref.set(
                {"page_index": page_index, "updated_at": datetime.now(UTC)}
            )
            logger.debug("Saved progress %s -> %d", document_key, page_index)
        except Exception as e:
            logger.error("Failed to save progress: %s", e)
            raise ProgressStoreError(f"Failed to save progress: {e}") from e

    async def health_check(self) -> dict[str, Any]:
        """Check Firestore connection health."""
        start = time.time()
        try:
            test_ref = self.db.collection("_health_check").document("test")
            await test_ref.set({"timestamp": datetime.now(UTC)})
            await test_ref.get()

            latency = (time.time() - start) * 1000
            return {"status": "healthy", "latency_ms": round(latency, 2)}
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}
