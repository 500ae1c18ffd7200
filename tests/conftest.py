import itertools
import random
import socket
from datetime import date
from types import SimpleNamespace

import pytest

from voice2post import create_app
from voice2post.config import AppConfig
from voice2post.extensions import AppContext

TODAY = date(2026, 10, 19)
NOW_TS = 1_792_400_000.0
WEBHOOK_SECRET = "whsec_test_secret"


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self._collection = collection
        self.id = doc_id

    def _store(self):
        return self._db.data.setdefault(self._collection, {})

    def get(self, transaction=None):
        self._db.check()
        return FakeSnapshot(self, self._store().get(self.id))

    def set(self, data, merge=False):
        self._db.check()
        if merge and self.id in self._store():
            self._store()[self.id].update(data)
        else:
            self._store()[self.id] = dict(data)

    def update(self, updates):
        self._db.check()
        if self.id not in self._store():
            raise KeyError(f"No document to update: {self.id}")
        self._store()[self.id].update(updates)

    def delete(self):
        self._store().pop(self.id, None)


class FakeQuery:
    def __init__(self, db, collection, filters=(), order=None, limit=None):
        self._db = db
        self._collection = collection
        self._filters = tuple(filters)
        self._order = order
        self._limit = limit

    def where(self, field_path, op_string, value):
        assert op_string == "=="
        return FakeQuery(self._db, self._collection, self._filters + ((field_path, value),), self._order, self._limit)

    def order_by(self, field_path, direction=None):
        return FakeQuery(self._db, self._collection, self._filters, (field_path, direction), self._limit)

    def limit(self, count):
        return FakeQuery(self._db, self._collection, self._filters, self._order, count)

    def stream(self):
        self._db.check()
        store = self._db.data.get(self._collection, {})
        rows = [
            (doc_id, data) for doc_id, data in store.items()
            if all(data.get(field) == value for field, value in self._filters)
        ]
        if self._order is not None:
            field_path, direction = self._order
            rows.sort(key=lambda row: row[1].get(field_path, 0), reverse=direction == FakeFirestoreModule.Query.DESCENDING)
        if self._limit is not None:
            rows = rows[:self._limit]
        return [FakeSnapshot(FakeDocRef(self._db, self._collection, doc_id), data) for doc_id, data in rows]


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        super().__init__(db, name)
        self._name = name

    def document(self, doc_id=None):
        return FakeDocRef(self._db, self._name, doc_id or self._db.next_id())

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref


class FakeTransaction:
    def set(self, ref, data):
        ref.set(data)

    def update(self, ref, updates):
        ref.update(updates)


class FakeDB:
    def __init__(self):
        self.data = {}
        self.fail = False
        self._ids = itertools.count(1)

    def check(self):
        if self.fail:
            raise ConnectionError("firestore unavailable")

    def next_id(self):
        return f"doc{next(self._ids)}"

    def collection(self, name):
        return FakeCollection(self, name)

    def transaction(self):
        return FakeTransaction()


class FakeFirestoreModule:
    class Query:
        DESCENDING = "DESCENDING"
        ASCENDING = "ASCENDING"

    @staticmethod
    def transactional(fn):
        return fn


class FakeAuth:
    def __init__(self, id_tokens=None, session_cookies=None):
        self.id_tokens = dict(id_tokens or {})
        self.session_cookies = dict(session_cookies or {})

    def verify_id_token(self, token):
        if token not in self.id_tokens:
            raise ValueError("invalid id token")
        return self.id_tokens[token]

    def verify_session_cookie(self, cookie):
        if cookie not in self.session_cookies:
            raise ValueError("invalid session cookie")
        return self.session_cookies[cookie]

    def create_session_cookie(self, id_token, expires_in):
        cookie = f"session-{id_token}"
        self.session_cookies[cookie] = self.id_tokens[id_token]
        return cookie


class FakeBlob:
    def __init__(self, bucket, path):
        self._bucket = bucket
        self.name = path
        self.content_type = bucket.content_types.get(path, "")
        self.size = None
        self.reloads = 0

    def reload(self, timeout=None):
        self.reloads += 1
        data = self._bucket.objects.get(self.name)
        self.size = len(data) if data is not None else None

    def generate_signed_url(self, version, expiration, method):
        if self._bucket.signing_error:
            raise self._bucket.signing_error
        return f"https://signed.example.com/{self.name}?sig=1"

    def download_as_bytes(self, timeout=None):
        if self._bucket.download_error:
            raise self._bucket.download_error
        if self.name not in self._bucket.objects:
            raise FileNotFoundError(self.name)
        return self._bucket.objects[self.name]


class FakeBucket:
    def __init__(self, name="voice2post-test.appspot.com"):
        self.name = name
        self.objects = {}
        self.content_types = {}
        self.present = True
        self.signing_error = None
        self.download_error = None

    def blob(self, path):
        return FakeBlob(self, path)

    def exists(self):
        return self.present

    def list_blobs(self, prefix=None, max_results=None):
        names = sorted(name for name in self.objects if not prefix or name.startswith(prefix))
        return [FakeBlob(self, name) for name in names[:max_results]]


class FakeModels:
    def __init__(self):
        self.responses = []
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.responses.pop(0) if self.responses else ""
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(text=outcome)


class FakeGenaiClient:
    def __init__(self):
        self.models = FakeModels()


class FakeResponse:
    def __init__(self, data, content_type, headers=None):
        self._data = data
        self.headers = {"Content-Type": content_type, **(headers or {})}

    def read(self, amt=None):
        return self._data if amt is None else self._data[:amt]

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


class FakeHttp:
    def __init__(self):
        self.routes = {}
        self.calls = []

    def __call__(self, url, timeout=None):
        self.calls.append(url)
        outcome = self.routes.get(url, OSError(f"unreachable: {url}"))
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(*outcome)


class FakeResolver:
    """Maps hostnames to addresses in the shape ``socket.getaddrinfo`` returns."""

    def __init__(self, default="93.184.216.34"):
        self.hosts = {}
        self.default = default
        self.calls = []

    def __call__(self, host, port, family=0, type=0, proto=0, flags=0):
        self.calls.append(host)
        addresses = self.hosts.get(host, [self.default] if self.default else [])
        if not addresses:
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        return [(socket.AF_INET, socket.SOCK_STREAM, proto, "", (ip, port)) for ip in addresses]


def make_config(**overrides):
    values = dict(
        flask_secret_key="test-secret",
        runtime_env="test",
        gemini_api_key="gemini-test",
        storage_bucket="voice2post-test.appspot.com",
        stripe_secret_key="sk_test_123",
        stripe_publishable_key="pk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        stripe_price_plus_monthly="price_monthly",
        stripe_price_plus_yearly="price_yearly",
        app_url="https://voice2post.example.com",
        firebase_credentials={"type": "service_account"},
    )
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture()
def fake_db():
    return FakeDB()


@pytest.fixture()
def fake_auth():
    return FakeAuth(
        id_tokens={
            "tok-free": {"uid": "u-free", "email": "free@example.com"},
            "tok-plus": {"uid": "u-plus", "email": "plus@example.com"},
        },
        session_cookies={"valid-session": {"uid": "u-free"}},
    )


@pytest.fixture()
def fake_bucket():
    return FakeBucket()


@pytest.fixture()
def fake_genai():
    return FakeGenaiClient()


@pytest.fixture()
def fake_http():
    return FakeHttp()


@pytest.fixture()
def fake_resolver():
    return FakeResolver()


@pytest.fixture()
def config():
    return make_config()


@pytest.fixture()
def app_ctx(config, fake_db, fake_auth, fake_bucket, fake_genai, fake_http, fake_resolver):
    return AppContext(
        config,
        db=fake_db,
        auth_module=fake_auth,
        bucket=fake_bucket,
        genai_client=fake_genai,
        firestore_module=FakeFirestoreModule,
        http_open=fake_http,
        resolve_host=fake_resolver,
        today=lambda: TODAY,
        clock=lambda: NOW_TS,
        rng=random.Random(7),
    )


@pytest.fixture()
def app(app_ctx):
    flask_app = create_app(app_ctx=app_ctx)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as test_client:
        yield test_client


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def seed_profile(db, uid, **fields):
    profile = {
        "uid": uid,
        "email": "",
        "plan": "free",
        "usage_count": 0,
        "usage_reset_date": TODAY.isoformat(),
        "stripe_customer_id": None,
        "stripe_subscription_id": None,
        "created_at": NOW_TS,
        "updated_at": NOW_TS,
    }
    profile.update(fields)
    db.data.setdefault("profiles", {})[uid] = profile
    return profile
