"""Shared fixtures: in-memory database, fake storage, fake transports"""
from types import SimpleNamespace
from typing import Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base, enable_sqlite_foreign_keys, get_db
from app.main import app
from app.models.project import Project
from app.models.user import User
from app.player.transport import Transport
from app.services.storage_service import get_storage

# Leading bytes of an ID3-tagged MP3
MP3_HEADER = b"ID3\x04\x00\x00\x00\x00\x00\x00" + b"\x00" * 54


class FakeStorage:
    """In-memory stand-in for StorageService that records every call"""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.calls: List[tuple] = []
        self.fail_deletes = False

    def ensure_bucket(self) -> None:
        pass

    def issue_put_url(self, object_key, content_type=None, expires_in=None):
        self.calls.append(("put_url", object_key, content_type))
        return f"https://storage.test/{object_key}?op=put"

    def issue_get_url(self, object_key, expires_in=None):
        return f"https://storage.test/{object_key}?op=get"

    def open_multipart_session(self, object_key, content_type=None):
        self.calls.append(("open", object_key, content_type))
        return "upload-1"

    def issue_part_urls(self, object_key, upload_id, part_numbers, expires_in=None):
        self.calls.append(("part_urls", object_key, upload_id, list(part_numbers)))
        return [
            {"part_number": n, "url": f"https://storage.test/{object_key}?part={n}"}
            for n in part_numbers
        ]

    def complete_multipart_session(self, object_key, upload_id, parts):
        self.calls.append(("complete", object_key, upload_id, parts))

    def abort_multipart_session(self, object_key, upload_id):
        self.calls.append(("abort", object_key, upload_id))

    def delete_object(self, object_key):
        if self.fail_deletes:
            raise RuntimeError("storage unavailable")
        self.deleted.append(object_key)
        self.objects.pop(object_key, None)

    def read_header(self, object_key, length=64):
        if object_key not in self.objects:
            raise KeyError(object_key)
        return self.objects[object_key][:length]


class FakeTransport(Transport):
    """Scriptable deck; tests drive its events with emit()"""

    def __init__(self, duration: float = 180.0):
        super().__init__()
        self.url: Optional[str] = None
        self.peaks = None
        self.duration = duration
        self.current_time = 0.0
        self.playing = False
        self.volume = 1.0
        self.calls: List[str] = []
        self.exported_peaks = [[0.1, 0.5, 0.3]]

    def load(self, url: str, peaks: Optional[Sequence[Sequence[float]]] = None) -> None:
        self.calls.append("load")
        self.url = url
        self.peaks = peaks

    def play(self) -> None:
        self.calls.append("play")
        self.playing = True
        self.emit("play")

    def pause(self) -> None:
        self.calls.append("pause")
        self.playing = False
        self.emit("pause")

    def seek_to(self, ratio: float) -> None:
        self.current_time = ratio * self.duration

    def set_time(self, seconds: float) -> None:
        self.current_time = seconds

    def get_current_time(self) -> float:
        return self.current_time

    def get_duration(self) -> float:
        return self.duration

    def is_playing(self) -> bool:
        return self.playing

    def set_volume(self, level: float) -> None:
        self.volume = level

    def export_peaks(self):
        return self.exported_peaks

    def destroy(self) -> None:
        self.calls.append("destroy")
        super().destroy()


class ReadyOnLoadTransport(FakeTransport):
    """Deck whose backend reports ready before load() returns"""

    def load(self, url: str, peaks: Optional[Sequence[Sequence[float]]] = None) -> None:
        super().load(url, peaks)
        self.emit("ready", self.duration)


class TransportFactory:
    """Callable factory remembering every transport it built"""

    def __init__(self, transport_class=FakeTransport):
        self.transport_class = transport_class
        self.created: List[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        transport = self.transport_class()
        self.created.append(transport)
        return transport

    def alive(self) -> List[FakeTransport]:
        return [t for t in self.created if not t.destroyed]


@pytest.fixture
def db_session():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def client(db_session, storage):
    """TestClient wired to the in-memory database and fake storage"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def user(db_session):
    user = User(name="Alice", email="alice@example.com")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def other_user(db_session):
    user = User(name="Bob", email="bob@example.com")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def auth_headers(user):
    return {"X-User-Id": user.id}


@pytest.fixture
def project(db_session, user):
    project = Project(name="Album", owner_id=user.id)
    db_session.add(project)
    db_session.commit()
    return project


@pytest.fixture
def transport_factory():
    return TransportFactory()


@pytest.fixture
def ready_on_load_factory():
    """Factory for decks that emit ready synchronously inside load()"""
    return TransportFactory(ReadyOnLoadTransport)


@pytest.fixture
def put_object(storage, project):
    """Place an object in fake storage and return its key"""
    def _put(name: str, data: bytes = MP3_HEADER) -> str:
        key = f"{project.id}/1700000000000-{name}"
        storage.objects[key] = data
        return key
    return _put


@pytest.fixture
def demo_track():
    return SimpleNamespace(id="track-1", name="Demo", project_id="project-1")


@pytest.fixture
def make_version():
    """Build a version-like object as the catalog client would return it"""
    def _make(number: int, is_master: bool = False, version_id: Optional[str] = None):
        version_id = version_id or f"version-{number}"
        return SimpleNamespace(
            id=version_id,
            track_id="track-1",
            version_number=number,
            is_master=is_master,
            audio_url=f"https://storage.test/{version_id}.mp3",
        )
    return _make


@pytest.fixture
def local_factory():
    """Separate factory for the muted decks of waveform views"""
    return TransportFactory()


@pytest.fixture
def mp3_header():
    return MP3_HEADER
