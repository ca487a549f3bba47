"""
Firebase integration for Himalayan Rides
Firestore client bootstrap plus an in-memory Firestore for development and tests
"""
import copy
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as gcp_exceptions

from app.core.config import Settings

logger = logging.getLogger(__name__)


# ==================== Collection References ====================

class Collections:
    """Firestore collection names shared with the web app"""
    VEHICLES = "vehicles"
    BIKE_TOURS = "bikeTours"
    DESTINATIONS = "destinations"
    EXPERIENCES = "experiences"
    TRIP_PLANS = "tripPlans"

    # Worker bookkeeping
    JOB_RUNS = "job_runs"


# ==================== Mock Firestore ====================

_COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    '==': lambda a, b: a == b,
    '!=': lambda a, b: a != b,
    '<': lambda a, b: a < b,
    '<=': lambda a, b: a <= b,
    '>': lambda a, b: a > b,
    '>=': lambda a, b: a >= b,
    'in': lambda a, b: a in b,
    'not-in': lambda a, b: a not in b,
    'array-contains': lambda a, b: isinstance(a, list) and b in a,
    'array-contains-any': lambda a, b: isinstance(a, list) and any(v in a for v in b),
}

_MISSING = object()


def _split_path(path: str):
    parts = path.split('/')
    return '/'.join(parts[:-1]), parts[-1]


class MockFirestoreClient:
    """Mock Firestore client for development without Firebase credentials"""

    def __init__(self, seed: bool = True):
        self._data: Dict[str, Dict[str, dict]] = {}
        self._listeners: List["MockWatch"] = []
        # Collections whose listeners are rejected, e.g. to mimic security rules
        self.denied_collections = set()
        if seed:
            self._initialize_mock_data()
        logger.info("🔧 Using Mock Firestore Client")

    def _initialize_mock_data(self):
        """Initialize with sample fleet data for development"""
        now = datetime.now(timezone.utc)

        self._data[Collections.VEHICLES] = {
            're-himalayan-450': {
                'name': 'Royal Enfield Himalayan 450',
                'type': 'bike',
                'region': 'ladakh',
                'price': 2200,
                'image': 'https://images.unsplash.com/photo-1558981806-ec527fa84c39?w=800',
                'rating': 4.8,
                'fuel': 'Petrol',
                'gearbox': 'Manual',
                'features': ['ABS', 'Tripper Navigation', 'Luggage Rack'],
                'available': True,
                'createdAt': now,
                'updatedAt': now
            },
            're-classic-350': {
                'name': 'Royal Enfield Classic 350',
                'type': 'bike',
                'region': 'manali',
                'price': 1500,
                'image': 'https://images.unsplash.com/photo-1591637333184-19aa84b3e01f?w=800',
                'rating': 4.6,
                'fuel': 'Petrol',
                'gearbox': 'Manual',
                'features': ['Dual Channel ABS', 'Saddle Bags'],
                'available': True,
                'createdAt': now,
                'updatedAt': now
            },
            'mahindra-thar': {
                'name': 'Mahindra Thar 4x4',
                'type': 'suv',
                'region': 'spiti',
                'price': 5500,
                'image': 'https://images.unsplash.com/photo-1533473359331-0135ef1b58bf?w=800',
                'rating': 4.7,
                'fuel': 'Diesel',
                'gearbox': 'Manual',
                'seats': 4,
                'features': ['4x4', 'Roll Cage', 'Snow Chains'],
                'available': True,
                'createdAt': now,
                'updatedAt': now
            },
            'toyota-innova': {
                'name': 'Toyota Innova Crysta',
                'type': 'car',
                'region': 'ladakh',
                'price': 6500,
                'image': 'https://images.unsplash.com/photo-1549399542-7e3f8b79c341?w=800',
                'rating': 4.5,
                'fuel': 'Diesel',
                'gearbox': 'Automatic',
                'seats': 7,
                'features': ['Oxygen Cylinder', 'Roof Carrier', 'Driver Included'],
                'available': False,
                'createdAt': now,
                'updatedAt': now
            }
        }

    def collection(self, name: str):
        """Return a mock collection"""
        return MockCollection(name, self)

    def document(self, path: str):
        """Return a mock document"""
        return MockDocument(path, self)

    def batch(self):
        """Return a mock write batch"""
        return MockWriteBatch(self)

    def _notify(self, collection_name: str):
        """Push the current snapshot to every listener on a collection"""
        for watch in list(self._listeners):
            if watch.query.collection_name == collection_name:
                watch.push()


class MockQuery:
    """Mock Firestore query (filters, ordering and limit are applied in memory)"""

    def __init__(self, collection_name: str, client: MockFirestoreClient,
                 filters=None, orders=None, limit_count: Optional[int] = None):
        self.collection_name = collection_name
        self._client = client
        self._filters = list(filters or [])
        self._orders = list(orders or [])
        self._limit = limit_count

    def _copy(self, **changes):
        params = {
            'filters': self._filters,
            'orders': self._orders,
            'limit_count': self._limit,
        }
        params.update(changes)
        return MockQuery(self.collection_name, self._client, **params)

    def where(self, field_path: Optional[str] = None, op_string: Optional[str] = None,
              value: Any = None, *, filter=None):
        """Mock where query (positional form or FieldFilter)"""
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        if op_string not in _COMPARATORS:
            raise gcp_exceptions.InvalidArgument(f"Unsupported operator: {op_string}")
        return self._copy(filters=self._filters + [(field_path, op_string, value)])

    def order_by(self, field_path: str, direction: str = "ASCENDING"):
        """Mock order_by query"""
        return self._copy(orders=self._orders + [(field_path, direction)])

    def limit(self, count: int):
        """Mock limit query"""
        return self._copy(limit_count=count)

    def _matches(self, doc_data: dict) -> bool:
        for field_path, op_string, value in self._filters:
            field_value = doc_data.get(field_path, _MISSING)
            if field_value is _MISSING:
                return False
            try:
                if not _COMPARATORS[op_string](field_value, value):
                    return False
            except TypeError:
                return False
        return True

    def stream(self):
        """Return matching document snapshots"""
        documents = self._client._data.get(self.collection_name, {})
        rows = [
            (doc_id, doc_data) for doc_id, doc_data in documents.items()
            if self._matches(doc_data)
        ]

        # Firestore drops documents that lack an order_by field
        for field_path, _ in self._orders:
            rows = [row for row in rows if field_path in row[1]]
        for field_path, direction in reversed(self._orders):
            rows.sort(key=lambda row: row[1][field_path], reverse=direction == "DESCENDING")

        if self._limit is not None:
            rows = rows[:self._limit]

        return [
            MockDocumentSnapshot(f"{self.collection_name}/{doc_id}", copy.deepcopy(doc_data), doc_id)
            for doc_id, doc_data in rows
        ]

    def get(self):
        """Get all matching documents"""
        return self.stream()

    def on_snapshot(self, callback):
        """Register a listener; the current snapshot is delivered immediately"""
        if self.collection_name in self._client.denied_collections:
            raise gcp_exceptions.PermissionDenied(
                f"Missing or insufficient permissions for {self.collection_name}"
            )
        watch = MockWatch(self, callback)
        self._client._listeners.append(watch)
        watch.push()
        return watch


class MockCollection(MockQuery):
    """Mock Firestore collection"""

    def __init__(self, name: str, client: MockFirestoreClient):
        super().__init__(name, client)
        self.name = name
        self.id = name.split('/')[-1]

    def document(self, doc_id: Optional[str] = None):
        """Return a mock document (auto-generated ID when none is given)"""
        doc_id = doc_id or uuid.uuid4().hex[:20]
        return MockDocument(f"{self.name}/{doc_id}", self._client)

    def add(self, data: dict):
        """Add a document to collection"""
        doc_ref = self.document()
        doc_ref.set(data)
        return (datetime.now(timezone.utc), MockDocumentReference(doc_ref.path))


class MockDocument:
    """Mock Firestore document"""

    def __init__(self, path: str, client: MockFirestoreClient):
        self.path = path
        self._client = client
        self.collection_name, self.id = _split_path(path)

    def get(self):
        """Get document data"""
        doc_data = self._client._data.get(self.collection_name, {}).get(self.id)
        return MockDocumentSnapshot(self.path, copy.deepcopy(doc_data), self.id)

    def _apply_set(self, data: dict, merge: bool = False):
        documents = self._client._data.setdefault(self.collection_name, {})
        if merge and self.id in documents:
            documents[self.id].update(copy.deepcopy(data))
        else:
            documents[self.id] = copy.deepcopy(data)

    def _apply_update(self, data: dict):
        documents = self._client._data.get(self.collection_name, {})
        if self.id not in documents:
            raise gcp_exceptions.NotFound(f"No document to update: {self.path}")
        documents[self.id].update(copy.deepcopy(data))

    def _apply_delete(self):
        self._client._data.get(self.collection_name, {}).pop(self.id, None)

    def set(self, data: dict, merge: bool = False):
        """Set document data"""
        self._apply_set(data, merge)
        self._client._notify(self.collection_name)

    def update(self, data: dict):
        """Update document data (the document must exist)"""
        self._apply_update(data)
        self._client._notify(self.collection_name)

    def delete(self):
        """Delete document"""
        self._apply_delete()
        self._client._notify(self.collection_name)

    def collection(self, name: str):
        """Return subcollection"""
        return MockCollection(f"{self.path}/{name}", self._client)


class MockDocumentSnapshot:
    """Mock document snapshot"""

    def __init__(self, path: str, data: Optional[dict], doc_id: Optional[str] = None):
        self.id = doc_id or (path.split('/')[-1] if path else None)
        self.path = path
        self._data = data

    @property
    def exists(self) -> bool:
        """Check if document exists"""
        return self._data is not None

    def to_dict(self):
        """Get document data as dict"""
        return self._data


class MockDocumentReference:
    """Mock document reference"""

    def __init__(self, path: str):
        self.id = path.split('/')[-1] if path else None
        self.path = path


class MockWriteBatch:
    """Mock batched write: all staged writes apply together or not at all"""

    def __init__(self, client: MockFirestoreClient):
        self._client = client
        self._writes = []

    def set(self, reference, document_data: dict, merge: bool = False):
        self._writes.append(('set', reference.path, document_data, merge))
        return self

    def update(self, reference, field_updates: dict):
        self._writes.append(('update', reference.path, field_updates, False))
        return self

    def delete(self, reference):
        self._writes.append(('delete', reference.path, None, False))
        return self

    def commit(self):
        backup = copy.deepcopy(self._client._data)
        touched = []
        try:
            for kind, path, data, merge in self._writes:
                doc = MockDocument(path, self._client)
                if kind == 'set':
                    doc._apply_set(data, merge)
                elif kind == 'update':
                    doc._apply_update(data)
                else:
                    doc._apply_delete()
                if doc.collection_name not in touched:
                    touched.append(doc.collection_name)
        except Exception:
            self._client._data.clear()
            self._client._data.update(backup)
            raise

        for collection_name in touched:
            self._client._notify(collection_name)
        return []


class MockWatch:
    """Mock snapshot listener handle"""

    def __init__(self, query: MockQuery, callback):
        self.query = query
        self._callback = callback
        self._client = query._client
        self._closed = False

    @property
    def is_active(self) -> bool:
        return not self._closed

    def push(self):
        if not self._closed:
            self._callback(self.query.stream(), [], datetime.now(timezone.utc))

    def close(self):
        """Stop the listen stream the way a server-side failure does"""
        self._closed = True
        if self in self._client._listeners:
            self._client._listeners.remove(self)

    def unsubscribe(self):
        self.close()


# ==================== Client Bootstrap ====================

def _load_credentials(config: Settings):
    """
    Resolve service account credentials

    Supports two modes:
    1. GOOGLE_APPLICATION_CREDENTIALS pointing to a JSON file (production recommended)
    2. FIREBASE_CREDENTIALS_JSON with an inline JSON string
    """
    if config.GOOGLE_APPLICATION_CREDENTIALS:
        logger.info(f"Loading Firebase credentials from GOOGLE_APPLICATION_CREDENTIALS: "
                    f"{config.GOOGLE_APPLICATION_CREDENTIALS}")
        return credentials.Certificate(config.GOOGLE_APPLICATION_CREDENTIALS)

    if config.FIREBASE_CREDENTIALS_JSON:
        logger.info("Loading Firebase credentials from FIREBASE_CREDENTIALS_JSON environment variable")
        return credentials.Certificate(json.loads(config.FIREBASE_CREDENTIALS_JSON))

    raise ValueError(
        "Firebase credentials not found. Please set either:\n"
        "  - USE_MOCK_FIREBASE=True (for development), or\n"
        "  - GOOGLE_APPLICATION_CREDENTIALS=/path/to/firebase-key.json, or\n"
        "  - FIREBASE_CREDENTIALS_JSON='{...}' (inline JSON string)"
    )


def create_firestore_client(config: Settings):
    """
    Build the Firestore client for this process

    Returns a MockFirestoreClient when USE_MOCK_FIREBASE is set, otherwise
    initializes the Firebase Admin SDK (once per process) and returns its client.
    """
    if config.USE_MOCK_FIREBASE:
        logger.warning("🔧 Running in MOCK mode - using in-memory database (no real Firebase)")
        return MockFirestoreClient()

    try:
        try:
            firebase_admin.get_app()
        except ValueError:
            firebase_admin.initialize_app(_load_credentials(config))

        client = firestore.client()
        logger.info("✅ Firebase initialized successfully")
        return client

    except Exception as e:
        logger.error(f"❌ Failed to initialize Firebase: {e}")
        raise


# ==================== Timestamp Helpers ====================

def to_datetime(value: Any) -> Optional[datetime]:
    """
    Normalize a Firestore timestamp field to an aware UTC datetime

    Handles datetime (including DatetimeWithNanoseconds), objects exposing
    timestamp() and epoch seconds or milliseconds. Anything else maps to None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if hasattr(value, 'timestamp'):
        return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)

    if isinstance(value, (int, float)):
        seconds = float(value)
        # Web clients store Date.now() in milliseconds
        if seconds > 1e11:
            seconds /= 1000.0
        return datetime.fromtimestamp(seconds, tz=timezone.utc)

    if isinstance(value, dict) and 'seconds' in value:
        seconds = value['seconds'] + value.get('nanoseconds', 0) / 1e9
        return datetime.fromtimestamp(seconds, tz=timezone.utc)

    return None
