import json
from datetime import datetime

import pytest

from readmaster.chains.flashcard_chain import ChainResult

PASSAGE = "It was the best of times, it was the worst of times, it was the age of wisdom, it was the age of foolishness."


class StubChain:
    model = "stub-model"

    def __init__(self, fronts):
        self.fronts = fronts

    def is_available(self):
        return True

    async def generate(self, **kwargs):
        payload = json.dumps({"flashcards": [
            {"type": "quote", "front": f, "back": "Dickens", "tags": ["opening"], "difficulty": 2}
            for f in self.fronts
        ]})
        return ChainResult(text=payload, model=self.model, prompt_tokens=10, completion_tokens=20,
                           total_tokens=30, duration_ms=5)


@pytest.mark.asyncio
async def test_generate_flashcards(app, client, factory):
    user = await factory.user()
    book = await factory.book(user)
    app.state.flashcard_chain = StubChain(["Who wrote this opening line", "Which city is the first of the two"])

    response = await client.post("/api/ai/generate-flashcards", json={
        "user_id": user.id,
        "book_id": book.id,
        "content": PASSAGE,
        "card_types": ["quote"],
        "card_count": 2,
    })

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["flashcards"]) == 2
    assert data["flashcards"][0]["type"] == "QUOTE"
    assert data["flashcards"][0]["status"] == "NEW"
    assert data["summary"]["saved_count"] == 2
    assert data["usage"]["total_tokens"] == 30
    assert data["book_id"] == book.id


@pytest.mark.asyncio
async def test_generate_without_ai_configured(client, factory):
    user = await factory.user()
    book = await factory.book(user)

    response = await client.post("/api/ai/generate-flashcards", json={
        "user_id": user.id, "book_id": book.id, "content": PASSAGE,
    })

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_generate_validation_errors(client):
    response = await client.post("/api/ai/generate-flashcards", json={
        "user_id": "u", "book_id": "b", "content": "too short", "card_count": 31, "card_types": ["poem"],
    })

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    fields = {f["field"] for f in error["details"]["fields"]}
    assert "content" in fields
    assert "card_count" in fields
    assert any(f.startswith("card_types") for f in fields)


@pytest.mark.asyncio
async def test_review_endpoint(client, factory):
    user = await factory.user()
    card = await factory.flashcard(user)

    response = await client.post(f"/api/flashcards/{card.id}/review", json={"user_id": user.id, "rating": 4})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["flashcard"]["status"] == "LEARNING"
    assert data["flashcard"]["interval"] == 1
    assert data["review"]["new_ease"] == pytest.approx(2.65)
    assert data["total_cards_reviewed"] == 1


@pytest.mark.asyncio
async def test_review_rejects_out_of_range_rating(client, factory):
    user = await factory.user()
    card = await factory.flashcard(user)

    response = await client.post(f"/api/flashcards/{card.id}/review", json={"user_id": user.id, "rating": 5})

    assert response.status_code == 400
    assert response.json()["error"]["details"]["fields"][0]["field"] == "rating"


@pytest.mark.asyncio
async def test_due_endpoint(client, factory):
    user = await factory.user()
    card = await factory.flashcard(user, due_date=datetime(2020, 1, 1))
    await factory.flashcard(user, due_date=datetime(2999, 1, 1))

    response = await client.get("/api/flashcards/due", params={"user_id": user.id})

    assert response.status_code == 200
    data = response.json()["data"]
    assert [c["id"] for c in data["flashcards"]] == [card.id]
    assert data["total_due"] == 1
    assert data["overdue_count"] == 1
