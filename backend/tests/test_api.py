from helpers import make_profile

AUTHOR = {"X-User-Id": "author"}
EDITOR = {"X-User-Id": "editor"}
READER = {"X-User-Id": "reader"}

QUESTIONS = [
    {"question": f"Q{i}?", "options": ["a", "b", "c", "d"], "correct_answer": 0}
    for i in range(4)
]


async def _publish(client, title="AI Basics", questions=QUESTIONS):
    r = await client.post("/api/drafts", json={
        "title": title,
        "content_html": "<p>Neural networks explained.</p>",
        "quiz_questions": questions,
    }, headers=AUTHOR)
    assert r.status_code == 201
    draft_id = r.json()["id"]
    assert (await client.post(f"/api/drafts/{draft_id}/submit", headers=AUTHOR)).status_code == 200
    r = await client.post(f"/api/review/{draft_id}/approve", headers=EDITOR)
    assert r.status_code == 200
    return r.json()


async def test_health(client):
    r = await client.get("/health")
    assert r.json() == {"status": "ok"}


async def test_missing_user_header_is_401(client):
    r = await client.get("/api/drafts")
    assert r.status_code == 401


async def test_review_requires_editor(client):
    await make_profile("author", "Author")
    r = await client.get("/api/review/queue", headers=AUTHOR)
    assert r.status_code == 403


async def test_publish_flow_and_quiz_attempts(client):
    await make_profile("editor", "Ed", role="editor")
    await make_profile("reader", "Reader", avatar_url="/r.png")

    article = await _publish(client)
    assert article["slug"] == "ai-basics"
    assert article["status"] == "published"

    r = await client.get("/api/articles/ai-basics")
    assert r.json()["id"] == article["id"]

    quiz = (await client.get(f"/api/articles/{article['id']}/quiz")).json()
    assert len(quiz["questions"]) == 4

    payload = {"score": 4, "total_questions": 4, "time_spent_seconds": 40}
    first = await client.post(f"/api/quizzes/{quiz['id']}/attempts", json=payload, headers=READER)
    assert first.status_code == 200
    again = await client.post(
        f"/api/quizzes/{quiz['id']}/attempts",
        json={"score": 1, "total_questions": 4, "time_spent_seconds": 5},
        headers=READER,
    )
    assert again.json()["id"] == first.json()["id"]
    assert again.json()["score"] == 4

    board = (await client.get(f"/api/articles/{article['id']}/leaderboard")).json()
    assert [(e["user_name"], e["rank"]) for e in board] == [("Reader", 1)]

    mine = (await client.get(f"/api/articles/{article['id']}/my-attempt", headers=READER)).json()
    assert mine["score"] == 4


async def test_attempt_total_must_match_quiz(client):
    await make_profile("editor", "Ed", role="editor")
    article = await _publish(client)
    quiz = (await client.get(f"/api/articles/{article['id']}/quiz")).json()

    r = await client.post(
        f"/api/quizzes/{quiz['id']}/attempts",
        json={"score": 2, "total_questions": 3, "time_spent_seconds": 10},
        headers=READER,
    )
    assert r.status_code == 400
    assert r.json()["error"] == "validation"


async def test_resubmission_returns_stored_attempt_even_if_payload_invalid(client):
    await make_profile("editor", "Ed", role="editor")
    article = await _publish(client)
    quiz = (await client.get(f"/api/articles/{article['id']}/quiz")).json()
    total = len(quiz["questions"])
    url = f"/api/quizzes/{quiz['id']}/attempts"

    first = await client.post(
        url, json={"score": 1, "total_questions": total, "time_spent_seconds": 30}, headers=READER
    )
    again = await client.post(
        url, json={"score": 2, "total_questions": total + 1, "time_spent_seconds": 5}, headers=READER
    )

    assert first.status_code == 200
    assert again.status_code == 200
    assert again.json()["id"] == first.json()["id"]
    assert again.json()["score"] == 1


async def test_error_mapping(client):
    await make_profile("editor", "Ed", role="editor")
    r = await client.post("/api/drafts", headers=AUTHOR)
    draft_id = r.json()["id"]

    r = await client.post(f"/api/drafts/{draft_id}/submit", headers=AUTHOR)
    assert r.status_code == 400
    assert r.json()["error"] == "validation"

    r = await client.post(f"/api/review/{draft_id}/approve", headers=EDITOR)
    assert r.status_code == 409
    assert r.json()["error"] == "invalid_transition"

    r = await client.get("/api/drafts/does-not-exist", headers=AUTHOR)
    assert r.status_code == 404


async def test_reject_then_fix_and_resubmit(client):
    await make_profile("editor", "Ed", role="editor")
    r = await client.post("/api/drafts", json={"title": "T", "content_html": "<p>b</p>"}, headers=AUTHOR)
    draft_id = r.json()["id"]
    await client.post(f"/api/drafts/{draft_id}/submit", headers=AUTHOR)

    r = await client.put(f"/api/drafts/{draft_id}", json={"title": "locked"}, headers=AUTHOR)
    assert r.status_code == 409
    assert r.json()["error"] == "draft_locked"

    r = await client.post(f"/api/review/{draft_id}/reject", json={"reason": "needs sources"}, headers=EDITOR)
    assert r.json()["status"] == "rejected"
    assert r.json()["rejection_reason"] == "needs sources"

    r = await client.put(f"/api/drafts/{draft_id}", json={"content_html": "<p>with sources</p>"}, headers=AUTHOR)
    assert r.json()["status"] == "draft"

    r = await client.post(f"/api/drafts/{draft_id}/submit", headers=AUTHOR)
    assert r.json()["status"] == "submitted"


async def test_notifications_api(client):
    await make_profile("editor", "Ed", role="editor")
    await _publish(client, questions=[])

    r = await client.get("/api/notifications/unread-count", headers=AUTHOR)
    assert r.json() == {"count": 1}

    items = (await client.get("/api/notifications", headers=AUTHOR)).json()["items"]
    assert items[0]["type"] == "article_approved"

    # 别人的通知不可见
    r = await client.put(f"/api/notifications/{items[0]['id']}/read", headers=READER)
    assert r.status_code == 404

    r = await client.put(f"/api/notifications/{items[0]['id']}/read", headers=AUTHOR)
    assert r.json()["read"] is True
    assert (await client.get("/api/notifications/unread-count", headers=AUTHOR)).json() == {"count": 0}


async def test_likes_comments_and_follows(client):
    await make_profile("editor", "Ed", role="editor")
    article = await _publish(client, questions=[])

    r = await client.post(f"/api/articles/{article['id']}/like", headers=READER)
    assert r.json() == {"article_id": article["id"], "liked": True, "likes": 1}
    r = await client.get(f"/api/articles/{article['id']}/like", headers=READER)
    assert r.json()["liked"] is True

    r = await client.post(f"/api/articles/{article['id']}/comments", json={"content": "Nice"}, headers=READER)
    assert r.status_code == 201
    comments = (await client.get(f"/api/articles/{article['id']}/comments")).json()
    assert [c["content"] for c in comments] == ["Nice"]

    r = await client.post("/api/profiles/author/follow", headers=READER)
    assert r.json() == {"followee_id": "author", "following": True}
    r = await client.post("/api/profiles/reader/follow", headers=READER)
    assert r.status_code == 400


async def test_delete_published_draft_cascades(client):
    await make_profile("editor", "Ed", role="editor")
    article = await _publish(client)
    await client.post(f"/api/articles/{article['id']}/like", headers=READER)

    r = await client.delete(f"/api/drafts/{article['id']}", headers=READER)
    assert r.status_code == 403

    r = await client.delete(f"/api/drafts/{article['id']}", headers=AUTHOR)
    assert r.status_code == 200
    assert (await client.get(f"/api/articles/{article['id']}")).status_code == 404
    assert (await client.get(f"/api/articles/{article['id']}/quiz")).status_code == 404


async def test_autosave_and_import(client):
    r = await client.post("/api/drafts", headers=AUTHOR)
    draft_id = r.json()["id"]

    r = await client.post(f"/api/drafts/{draft_id}/autosave", json={"title": "Later"}, headers=AUTHOR)
    assert r.status_code == 202

    r = await client.post(
        "/api/drafts/import",
        files={"file": ("notes.txt", b"Hello\n\nWorld", "text/plain")},
        headers=AUTHOR,
    )
    assert r.json() == {"title": "notes", "content_html": "<p>Hello</p><p>World</p>"}


async def test_ai_endpoints_without_configuration(client):
    r = await client.post("/api/ai/generate-quiz", json={"html": "<p>text</p>"}, headers=AUTHOR)
    assert r.status_code == 400

    r = await client.post("/api/ai/organize", json={"html": "<p>text</p>"}, headers=AUTHOR)
    assert r.json() == {"rewritten_html": "<p>text</p>", "suggested_tags": []}


async def test_editor_dashboard(client):
    await make_profile("editor", "Ed", role="editor")
    article = await _publish(client, questions=[])

    r = await client.put(f"/api/review/articles/{article['id']}/featured", json={"featured": True}, headers=EDITOR)
    assert r.json()["featured"] is True

    stats = (await client.get("/api/review/stats", headers=EDITOR)).json()
    assert stats["total_articles"] == 1
    assert stats["featured_articles"] == 1


async def test_view_tracking_and_search_routes(client):
    await make_profile("editor", "Ed", role="editor")
    article = await _publish(client, title="Deep Learning Notes")

    r = await client.post(f"/api/articles/{article['id']}/view", headers=READER)
    assert r.json() == {"article_id": article["id"], "counted": True, "views": 1}
    r = await client.post(f"/api/articles/{article['id']}/view", headers=READER)
    assert r.json()["counted"] is False

    # 匿名浏览按来源地址计数
    r = await client.post(f"/api/articles/{article['id']}/view")
    assert r.status_code == 200
    assert r.json()["views"] == 2
    assert (await client.get(f"/api/articles/{article['id']}")).json()["views"] == 2

    r = await client.get("/api/articles/search", params={"q": "deep learning"})
    assert [a["id"] for a in r.json()] == [article["id"]]
    assert (await client.get("/api/articles/search", params={"q": ""})).status_code == 422

    r = await client.get("/api/articles/trending-tags")
    assert r.status_code == 200
    assert isinstance(r.json(), list)
