"""Tests for document and AI-task endpoints."""

from urllib.parse import quote

import pytest

from studyflow.config import get_settings

settings = get_settings()

MB = 1024 * 1024


async def upload(client, headers, *files, category="resume"):
    return await client.post(
        "/documents/upload",
        files=[("files", f) for f in files],
        data={"category": category},
        headers=headers,
    )


@pytest.fixture
async def uploaded(client, auth_headers):
    response = await upload(client, auth_headers, ("notes.txt", b"hello world", "text/plain"))
    assert response.status_code == 201
    return response.json()["documents"][0]


async def test_small_upload_stored_inline_with_ai_tasks(client, auth_headers, storage, analyzer):
    response = await upload(client, auth_headers, ("notes.txt", b"hello world", "text/plain"))

    assert response.status_code == 201
    body = response.json()
    assert body["ai_tasks_created"] == len(analyzer.steps)
    assert body["rejected"] == []
    document = body["documents"][0]
    assert document["name"] == "notes.txt"
    assert document["category"] == "resume"
    assert document["is_inline"] is True
    assert document["url"].startswith("data:text/plain;base64,")
    assert storage.objects == {}

    ai_tasks = await client.get("/ai-tasks/", params={"document_id": document["id"]}, headers=auth_headers)
    assert sorted(t["text"] for t in ai_tasks.json()) == sorted(analyzer.steps)
    assert all(t["priority"] == "medium" and t["ai_generated"] for t in ai_tasks.json())


async def test_large_upload_goes_to_storage(client, auth_headers, storage):
    response = await upload(client, auth_headers, ("big.txt", b"x" * (MB + 1), "text/plain"))

    assert response.status_code == 201
    document = response.json()["documents"][0]
    assert document["is_inline"] is False
    assert len(storage.objects) == 1
    key = next(iter(storage.objects))
    assert document["url"] == f"https://storage.test/{key}"

    download = await client.get(f"/documents/{document['id']}/download", headers=auth_headers)
    assert download.status_code == 307
    assert download.headers["location"] == f"https://storage.test/{key}"


async def test_unreadable_pdf_still_uploads(client, auth_headers):
    response = await upload(client, auth_headers, ("scan.pdf", b"%PDF-not really", "application/pdf"))

    assert response.status_code == 201
    assert response.json()["documents"][0]["page_count"] is None


async def test_mixed_batch_reports_rejections(client, auth_headers):
    response = await upload(
        client,
        auth_headers,
        ("archive.zip", b"PK", "application/zip"),
        ("cv.txt", b"my cv", "text/plain"),
    )

    assert response.status_code == 201
    body = response.json()
    assert [d["name"] for d in body["documents"]] == ["cv.txt"]
    assert body["rejected"] == [
        {"filename": "archive.zip", "reason": "File type application/zip is not supported."}
    ]


async def test_all_rejected(client, auth_headers):
    response = await upload(client, auth_headers, ("archive.zip", b"PK", "application/zip"))
    assert response.status_code == 400


async def test_storage_failure_for_oversized_fallback(client, auth_headers, storage):
    storage.fail_upload = True

    response = await upload(client, auth_headers, ("huge.txt", b"x" * (6 * MB), "text/plain"))

    assert response.status_code == 502
    assert "Upload failed" in response.json()["detail"]
    listing = await client.get("/documents/", headers=auth_headers)
    assert listing.json()["total"] == 0


async def test_invalid_category(client, auth_headers):
    response = await upload(client, auth_headers, ("a.txt", b"a", "text/plain"), category="receipt")
    assert response.status_code == 422


async def test_list_and_filter(client, auth_headers, uploaded):
    await upload(client, auth_headers, ("id.txt", b"id", "text/plain"), category="id")

    everything = await client.get("/documents/", headers=auth_headers)
    ids_only = await client.get("/documents/", params={"category": "id"}, headers=auth_headers)

    assert everything.json()["total"] == 2
    assert [d["name"] for d in ids_only.json()["documents"]] == ["id.txt"]


async def test_download_inline(client, auth_headers, uploaded):
    response = await client.get(f"/documents/{uploaded['id']}/download", headers=auth_headers)

    assert response.status_code == 200
    assert response.content == b"hello world"
    assert response.headers["content-disposition"] == 'attachment; filename="notes.txt"'


async def test_download_inline_with_non_latin1_name(client, auth_headers):
    name = "résumé—中文.txt"
    response = await upload(client, auth_headers, (name, b"cv", "text/plain"))
    document = response.json()["documents"][0]

    download = await client.get(f"/documents/{document['id']}/download", headers=auth_headers)

    assert download.status_code == 200
    assert download.content == b"cv"
    assert download.headers["content-disposition"] == f"attachment; filename*=utf-8''{quote(name)}"


async def test_oversized_file_rejected_in_batch(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_size_bytes", 16)

    response = await upload(
        client,
        auth_headers,
        ("big.txt", b"x" * 64, "text/plain"),
        ("small.txt", b"x" * 16, "text/plain"),
    )

    assert response.status_code == 201
    body = response.json()
    assert [d["name"] for d in body["documents"]] == ["small.txt"]
    assert body["rejected"][0]["filename"] == "big.txt"
    assert "too large" in body["rejected"][0]["reason"]


async def test_document_hidden_from_other_user(client, other_auth_headers, uploaded):
    response = await client.get(f"/documents/{uploaded['id']}", headers=other_auth_headers)
    assert response.status_code == 404


async def test_analyze_document(client, auth_headers, analyzer, uploaded):
    response = await client.post(f"/documents/{uploaded['id']}/analysis", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert set(body["task_text"].split(". ")) == set(analyzer.steps)
    assert analyzer.calls[-1] == (body["task_text"], "high")


async def test_regenerate_appends(client, auth_headers, analyzer, uploaded):
    response = await client.post(f"/documents/{uploaded['id']}/ai-tasks", headers=auth_headers)

    assert response.status_code == 201
    assert response.json() == {"ai_tasks_created": len(analyzer.steps)}
    ai_tasks = await client.get("/ai-tasks/", params={"document_id": uploaded["id"]}, headers=auth_headers)
    assert len(ai_tasks.json()) == 2 * len(analyzer.steps)


async def test_toggle_and_delete_ai_task(client, auth_headers, uploaded):
    ai_tasks = (await client.get("/ai-tasks/", headers=auth_headers)).json()
    target = ai_tasks[0]["id"]

    toggled = await client.post(f"/ai-tasks/{target}/toggle", headers=auth_headers)
    assert toggled.json()["completed"] is True

    assert (await client.delete(f"/ai-tasks/{target}", headers=auth_headers)).status_code == 204
    remaining = (await client.get("/ai-tasks/", headers=auth_headers)).json()
    assert target not in [t["id"] for t in remaining]


async def test_delete_cascades_to_ai_tasks(client, auth_headers, user, feed, uploaded):
    queue = feed.subscribe(user.id)

    response = await client.delete(f"/documents/{uploaded['id']}", headers=auth_headers)

    assert response.status_code == 204
    assert (await client.get(f"/documents/{uploaded['id']}", headers=auth_headers)).status_code == 404
    assert (await client.get("/ai-tasks/", headers=auth_headers)).json() == []
    assert {queue.get_nowait(), queue.get_nowait()} == {"documents", "ai_tasks"}


async def test_delete_survives_storage_failure(client, auth_headers, storage):
    response = await upload(client, auth_headers, ("big.txt", b"x" * (MB + 1), "text/plain"))
    document = response.json()["documents"][0]
    storage.fail_delete = True

    response = await client.delete(f"/documents/{document['id']}", headers=auth_headers)

    assert response.status_code == 204
    assert (await client.get("/documents/", headers=auth_headers)).json()["total"] == 0
    assert (await client.get("/ai-tasks/", headers=auth_headers)).json() == []
