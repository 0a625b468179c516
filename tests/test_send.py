"""Tests for anonymous sending through share links."""

import io
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from murmur.models.message import Message
from murmur.services.message import resolve_message_type
from murmur.services.storage import StorageService, extension_for_mime


class TestSendText:
    """Tests for anonymous text messages."""

    def test_send_text(self, client: TestClient, db_session: Session, test_user: dict):
        """A sender without an account can leave a text message."""
        response = client.post("/api/v1/send/tester/text", json={"text": "  You did great today  "})
        assert response.status_code == 201
        assert response.json() == {"detail": "Your anonymous message has been sent!", "message_type": "text"}

        message = db_session.query(Message).one()
        assert message.recipient_id == test_user["user_id"]
        assert message.message_text == "You did great today"
        assert message.message_type == "text"
        assert message.audio_url is None
        assert message.is_read is False

    def test_send_empty_text(self, client: TestClient, test_user: dict):
        """Whitespace-only messages are rejected."""
        response = client.post("/api/v1/send/tester/text", json={"text": "   "})
        assert response.status_code == 400
        assert response.json()["detail"] == "Message cannot be empty"

    def test_send_too_long(self, client: TestClient, test_user: dict):
        """Messages over the length limit are rejected."""
        response = client.post("/api/v1/send/tester/text", json={"text": "a" * 1001})
        assert response.status_code == 400
        assert "too long" in response.json()["detail"]

    def test_send_to_unknown_user(self, client: TestClient, db_session: Session):
        """Nothing is stored for a handle that does not exist."""
        response = client.post("/api/v1/send/ghost/text", json={"text": "hello"})
        assert response.status_code == 404
        assert db_session.query(Message).count() == 0


class TestSendAudio:
    """Tests for anonymous audio messages."""

    def test_send_recording(self, client: TestClient, db_session: Session, storage: StorageService, test_user: dict):
        """A browser recording is stored and referenced by its storage path."""
        response = client.post(
            "/api/v1/send/tester/audio",
            files={"file": ("recording.webm", io.BytesIO(b"\x1a\x45\xdf\xa3" * 256), "audio/webm;codecs=opus")},
        )
        assert response.status_code == 201
        assert response.json()["message_type"] == "audio"

        message = db_session.query(Message).one()
        assert message.audio_url.startswith("audio-messages/")
        assert message.audio_url.endswith(f"-{test_user['user_id']}.webm")
        assert storage.local_path(message.audio_url).stat().st_size == 1024

    def test_send_m4a_upload(self, client: TestClient, db_session: Session, test_user: dict):
        """Phone recordings keep an m4a extension."""
        response = client.post(
            "/api/v1/send/tester/audio",
            files={"file": ("memo.m4a", io.BytesIO(b"\x00" * 512), "audio/mp4")},
        )
        assert response.status_code == 201
        assert db_session.query(Message).one().audio_url.endswith(".m4a")

    def test_send_audio_with_text(self, client: TestClient, db_session: Session, test_user: dict):
        """Audio plus a note is stored as type 'both'."""
        response = client.post(
            "/api/v1/send/tester/audio",
            files={"file": ("a.mp3", io.BytesIO(b"\x00" * 64), "audio/mpeg")},
            data={"text": "listen to this"},
        )
        assert response.status_code == 201
        message = db_session.query(Message).one()
        assert message.message_type == "both"
        assert message.message_text == "listen to this"

    def test_send_non_audio(self, client: TestClient, db_session: Session, test_user: dict):
        """Non-audio uploads are rejected before anything is stored."""
        response = client.post(
            "/api/v1/send/tester/audio",
            files={"file": ("x.exe", io.BytesIO(b"\x00" * 64), "application/octet-stream")},
        )
        assert response.status_code == 400
        assert "Must be an audio file" in response.json()["detail"]
        assert db_session.query(Message).count() == 0

    def test_send_empty_audio(self, client: TestClient, db_session: Session, storage: StorageService, test_user: dict):
        """Empty blobs are rejected and leave no object behind."""
        response = client.post(
            "/api/v1/send/tester/audio",
            files={"file": ("a.webm", io.BytesIO(b""), "audio/webm")},
        )
        assert response.status_code == 400
        assert db_session.query(Message).count() == 0
        assert list(storage.bucket_dir.iterdir()) == []

    def test_send_audio_too_large(self, client: TestClient, db_session: Session, storage: StorageService, test_user: dict):
        """Oversized uploads answer 413 and no message references them."""
        storage.max_bytes = 100
        response = client.post(
            "/api/v1/send/tester/audio",
            files={"file": ("a.webm", io.BytesIO(b"\x00" * 101), "audio/webm")},
        )
        assert response.status_code == 413
        assert db_session.query(Message).count() == 0
        assert list(storage.bucket_dir.iterdir()) == []

    def test_same_millisecond_upload_keeps_first_object(
        self, client: TestClient, db_session: Session, storage: StorageService, test_user: dict
    ):
        """A name collision fails the second upload instead of overwriting the first."""
        with patch.object(storage, "build_object_name", return_value="1700000000000-fixed.webm"):
            first = client.post(
                "/api/v1/send/tester/audio",
                files={"file": ("a.webm", io.BytesIO(b"first"), "audio/webm")},
            )
            second = client.post(
                "/api/v1/send/tester/audio",
                files={"file": ("b.webm", io.BytesIO(b"second"), "audio/webm")},
            )
        assert first.status_code == 201
        assert second.status_code == 502
        message = db_session.query(Message).one()
        assert storage.read_bytes(message.audio_url) == b"first"


class TestSendPage:
    """Tests for the public send page."""

    def test_send_page(self, client: TestClient, test_user: dict):
        """Share link shows the recipient's display name."""
        response = client.get("/send/tester")
        assert response.status_code == 200
        assert "Test User" in response.text

    def test_send_page_unknown_user(self, client: TestClient):
        """Unknown handles render the not-found view."""
        response = client.get("/send/ghost")
        assert response.status_code == 404
        assert "User Not Found" in response.text
        assert 'The username "ghost" does not exist.' in response.text

    def test_send_text_form(self, client: TestClient, db_session: Session, test_user: dict):
        """The text form confirms delivery on the same page."""
        response = client.post("/send/tester", data={"text": "hi there"})
        assert response.status_code == 200
        assert "Your anonymous message has been sent!" in response.text
        assert db_session.query(Message).count() == 1

    def test_send_text_form_empty(self, client: TestClient, test_user: dict):
        """The text form shows validation errors inline."""
        response = client.post("/send/tester", data={"text": ""})
        assert response.status_code == 400
        assert "Message cannot be empty" in response.text

    def test_send_audio_form(self, client: TestClient, db_session: Session, test_user: dict):
        """In-browser recordings post to the audio form."""
        response = client.post(
            "/send/tester/audio",
            files={"file": ("recording.webm", io.BytesIO(b"\x00" * 128), "audio/webm")},
        )
        assert response.status_code == 200
        assert "Your anonymous audio message has been sent!" in response.text
        assert db_session.query(Message).one().message_type == "audio"


class TestMessageTypeRules:
    """Tests for type and extension derivation."""

    def test_resolve_message_type(self):
        assert resolve_message_type("hi", None) == "text"
        assert resolve_message_type(None, "audio-messages/x.webm") == "audio"
        assert resolve_message_type("hi", "audio-messages/x.webm") == "both"

    def test_extension_for_mime(self):
        assert extension_for_mime("audio/webm;codecs=opus") == "webm"
        assert extension_for_mime("audio/mp4") == "m4a"
        assert extension_for_mime("audio/mpeg") == "mp3"
        assert extension_for_mime("audio/x-unknown") == "webm"
        assert extension_for_mime(None) == "webm"

    def test_object_name(self):
        storage = StorageService(root="unused")
        assert storage.build_object_name("abc", "audio/ogg", now_ms=1700000000000) == "1700000000000-abc.ogg"
