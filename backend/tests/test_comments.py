"""Tests for comment threads and resolve state"""
import pytest

from app.models.track import Track
from app.models.track_version import TrackVersion
from app.models.user import User
from app.schemas import CommentInfo
from app.services.comment_service import CommentService
from app.services.errors import CommentStateError, NotFoundError


@pytest.fixture
def version(db_session, project, user):
    track = Track(project_id=project.id, name="Demo")
    db_session.add(track)
    db_session.flush()
    version = TrackVersion(track_id=track.id, version_number=1, audio_key="k1", is_master=True,
                           uploaded_by_id=user.id)
    db_session.add(version)
    db_session.commit()
    return version


@pytest.fixture
def comments_url(version):
    return f"/api/tracks/{version.track_id}/versions/{version.id}/comments"


def post_comment(client, headers, url, content, timestamp=None, parent_id=None):
    response = client.post(url, json={"content": content, "timestamp": timestamp, "parent_id": parent_id},
                           headers=headers)
    assert response.status_code == 201, response.json()
    return response.json()


class TestResolve:
    """Resolve and unresolve are guarded against repeats"""

    def test_resolve_twice_then_unresolve(self, client, auth_headers, comments_url):
        comment = post_comment(client, auth_headers, comments_url, "Kick too loud", timestamp=45)
        resolve_url = f"{comments_url}/{comment['id']}/resolve"

        first = client.post(resolve_url, headers=auth_headers)
        assert first.status_code == 200
        assert first.json()["resolved_at"] is not None

        second = client.post(resolve_url, headers=auth_headers)
        assert second.status_code == 400
        assert second.json() == {"error": "Comment is already resolved"}

        reopened = client.delete(resolve_url, headers=auth_headers)
        assert reopened.status_code == 200
        assert reopened.json()["resolved_at"] is None
        assert reopened.json()["resolved_by_id"] is None

    def test_unresolve_unresolved_is_error(self, client, auth_headers, comments_url):
        comment = post_comment(client, auth_headers, comments_url, "Nice bridge", timestamp=10)

        response = client.delete(f"{comments_url}/{comment['id']}/resolve", headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Comment is not resolved"}

    def test_general_comment_cannot_be_resolved(self, client, auth_headers, comments_url):
        comment = post_comment(client, auth_headers, comments_url, "Overall great")

        response = client.post(f"{comments_url}/{comment['id']}/resolve", headers=auth_headers)
        assert response.status_code == 400

    def test_reply_cannot_be_resolved(self, client, auth_headers, comments_url):
        parent = post_comment(client, auth_headers, comments_url, "Hiss here", timestamp=12)
        reply = post_comment(client, auth_headers, comments_url, "Fixed", timestamp=12, parent_id=parent["id"])

        response = client.post(f"{comments_url}/{reply['id']}/resolve", headers=auth_headers)
        assert response.status_code == 400

    def test_resolved_threads_hidden_by_default(self, client, auth_headers, comments_url):
        open_comment = post_comment(client, auth_headers, comments_url, "Open", timestamp=5)
        done = post_comment(client, auth_headers, comments_url, "Done", timestamp=6)
        post_comment(client, auth_headers, comments_url, "Reply", parent_id=done["id"])
        client.post(f"{comments_url}/{done['id']}/resolve", headers=auth_headers)

        visible = client.get(comments_url, headers=auth_headers).json()
        assert [c["id"] for c in visible] == [open_comment["id"]]

        everything = client.get(comments_url, params={"include_resolved": "true"}, headers=auth_headers).json()
        assert {c["id"] for c in everything} == {open_comment["id"], done["id"]}
        resolved = [c for c in everything if c["id"] == done["id"]][0]
        assert [r["content"] for r in resolved["replies"]] == ["Reply"]


class TestThreading:
    """One level of replies"""

    def test_replies_nest_under_parent(self, client, auth_headers, comments_url):
        parent = post_comment(client, auth_headers, comments_url, "Vocals?", timestamp=30)
        post_comment(client, auth_headers, comments_url, "Raised 2dB", parent_id=parent["id"])

        thread = client.get(comments_url, headers=auth_headers).json()
        assert len(thread) == 1
        assert thread[0]["replies"][0]["content"] == "Raised 2dB"
        assert thread[0]["replies"][0]["parent_id"] == parent["id"]

    def test_reply_to_reply_attaches_to_root(self, client, auth_headers, comments_url):
        root = post_comment(client, auth_headers, comments_url, "Root", timestamp=1)
        reply = post_comment(client, auth_headers, comments_url, "Reply", parent_id=root["id"])
        nested = post_comment(client, auth_headers, comments_url, "Nested", parent_id=reply["id"])

        assert nested["parent_id"] == root["id"]

    def test_unknown_parent(self, client, auth_headers, comments_url):
        response = client.post(comments_url, json={"content": "Hi", "parent_id": "missing"}, headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Parent comment not found"}

    def test_deleting_parent_removes_replies(self, client, auth_headers, comments_url, db_session):
        parent = post_comment(client, auth_headers, comments_url, "Parent", timestamp=3)
        post_comment(client, auth_headers, comments_url, "Child", parent_id=parent["id"])

        response = client.delete(f"{comments_url}/{parent['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert client.get(comments_url, params={"include_resolved": "true"}, headers=auth_headers).json() == []

    def test_only_author_can_edit(self, client, auth_headers, other_user, comments_url):
        comment = post_comment(client, auth_headers, comments_url, "Mine", timestamp=3)

        response = client.patch(f"{comments_url}/{comment['id']}", json={"content": "Theirs"},
                                headers={"X-User-Id": other_user.id})
        assert response.status_code == 403

        response = client.patch(f"{comments_url}/{comment['id']}", json={"content": "Edited"},
                                headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["content"] == "Edited"


class TestValidation:
    """Request bodies are checked field by field"""

    def test_empty_content(self, client, auth_headers, comments_url):
        response = client.post(comments_url, json={"content": ""}, headers=auth_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation error"
        assert body["details"][0]["loc"][-1] == "content"

    def test_negative_timestamp(self, client, auth_headers, comments_url):
        response = client.post(comments_url, json={"content": "x", "timestamp": -1}, headers=auth_headers)
        assert response.status_code == 400

    def test_missing_user_header(self, client, comments_url):
        response = client.get(comments_url)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}


class TestDeletedAuthor:
    """Comments outlive their authors"""

    def test_deleted_user_renders_placeholder(self, db_session, version):
        author = User(name="Carol", email="carol@example.com")
        db_session.add(author)
        db_session.commit()

        service = CommentService(db_session)
        comment = service.create_comment(version.id, author.id, "Too much reverb", timestamp=20)
        db_session.delete(author)
        db_session.commit()
        db_session.expire_all()

        thread = service.get_thread(version.id)
        info = CommentInfo.model_validate(thread[0])
        assert info.id == comment.id
        assert info.user is None
        assert info.author_name == "Deleted User"


class TestCommentService:
    """Service errors"""

    def test_parent_from_other_version(self, db_session, version, user):
        other = TrackVersion(track_id=version.track_id, version_number=2, audio_key="k2")
        db_session.add(other)
        db_session.commit()
        service = CommentService(db_session)
        parent = service.create_comment(other.id, user.id, "Elsewhere", timestamp=1)

        with pytest.raises(CommentStateError):
            service.create_comment(version.id, user.id, "Reply", parent_id=parent.id)

    def test_missing_parent(self, db_session, version, user):
        with pytest.raises(NotFoundError):
            CommentService(db_session).create_comment(version.id, user.id, "Reply", parent_id="nope")

    def test_resolve_records_resolver(self, db_session, version, user):
        service = CommentService(db_session)
        comment = service.create_comment(version.id, user.id, "Fix", timestamp=45)
        service.resolve(comment, user.id)
        assert comment.resolved_by_id == user.id

        with pytest.raises(CommentStateError, match="already resolved"):
            service.resolve(comment, user.id)
