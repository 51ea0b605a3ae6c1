"""
Pytest configuration and fixtures
"""
import itertools
import os
from unittest.mock import patch

import firebase_admin
import httpx
import pytest

# Set test environment
os.environ['FLASK_ENV'] = 'testing'
os.environ['GOOGLE_APPLICATION_CREDENTIALS'] = 'test-credentials.json'

from resumesync import create_app  # noqa: E402
from resumesync.services.identity import IdentityProvider  # noqa: E402
from resumesync.services.local_storage import MemoryStorage  # noqa: E402


# ----------------------------------------------------------------------
# In-memory Firestore
# ----------------------------------------------------------------------

class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, store, path, doc_id):
        self._store = store
        self._path = path
        self.id = doc_id

    def _key(self):
        return f"{self._path}/{self.id}"

    def get(self):
        return FakeSnapshot(self.id, self._store.docs.get(self._key()))

    def set(self, data):
        self._store.docs[self._key()] = dict(data)

    def update(self, changes):
        if self._key() not in self._store.docs:
            raise KeyError(self._key())
        self._store.docs[self._key()].update(changes)

    def delete(self):
        self._store.docs.pop(self._key(), None)

    def collection(self, name):
        return FakeCollection(self._store, f"{self._key()}/{name}")


class FakeCollection:
    def __init__(self, store, path):
        self._store = store
        self._path = path

    def document(self, doc_id=None):
        return FakeDocumentRef(self._store, self._path, doc_id or f"doc{next(self._store.ids)}")

    def stream(self):
        prefix = f"{self._path}/"
        for key, data in list(self._store.docs.items()):
            rest = key[len(prefix):]
            if key.startswith(prefix) and "/" not in rest:
                yield FakeSnapshot(rest, data)


class FakeFirestore:
    """Just enough of the Firestore client for ResumeStore."""

    def __init__(self):
        self.docs = {}
        self.ids = itertools.count(1)

    def collection(self, name):
        return FakeCollection(self, name)


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def mock_firebase_user():
    """Mock Firebase user"""
    return {
        'uid': 'test-user-id',
        'email': 'test@example.com',
        'name': 'Test User'
    }


@pytest.fixture
def app(fake_db, mock_firebase_user):
    """Flask app with Firestore and token verification faked out"""
    app = create_app(testing=True)
    with patch('resumesync.extensions.db', fake_db), \
            patch.dict(firebase_admin._apps, {'[DEFAULT]': object()}), \
            patch('resumesync.extensions.fb_auth.verify_id_token', return_value=mock_firebase_user):
        yield app


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {'Authorization': 'Bearer test-token'}


# ----------------------------------------------------------------------
# Client-side fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def flask_transport(client):
    """httpx transport that hands every request to the Flask test client."""
    def handler(request: httpx.Request) -> httpx.Response:
        response = client.open(
            request.url.raw_path.decode(),
            method=request.method,
            headers={
                k: v for k, v in request.headers.items()
                if k.lower() not in ('host', 'content-length', 'transfer-encoding')
            },
            data=request.content,
        )
        return httpx.Response(
            response.status_code,
            headers={'Content-Type': response.headers.get('Content-Type', 'application/json')},
            content=response.get_data(),
        )
    return httpx.MockTransport(handler)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def signed_out():
    return IdentityProvider()


@pytest.fixture
def signed_in():
    return IdentityProvider(subject_id='test-user-id', token='test-token')


@pytest.fixture
def raw_resume():
    """A raw import in the loose shape resume parsers produce"""
    return {
        'personalInfo': {
            'name': 'Jane Doe',
            'email': 'jane@example.com',
            'phone': '555-0100',
            'location': 'Austin, TX',
        },
        'summary': 'Compassionate ICU nurse with eight years of critical care experience.',
        'experience': [
            {
                'jobTitle': 'Registered Nurse - ICU',
                'company': 'St. Mary Hospital',
                'startDate': '2018-01',
                'endDate': 'Present',
                'description': 'Managed ventilated patients in a 24-bed intensive care unit.',
            }
        ],
        'education': [
            {'degree': 'Bachelor of Science in Nursing', 'school': 'University of Texas'},
            {'degree': 'ACLS Certification Course', 'school': 'American Heart Association'},
        ],
        'skills': ['Epic', 'IV Therapy', 'Fluent in Spanish', 'Team Leadership'],
        'certifications': ['BLS', 'Underwater Basket Weaving'],
        'licenses': [{'type': 'RN', 'state': 'Texas', 'number': 'RN123'}],
    }
