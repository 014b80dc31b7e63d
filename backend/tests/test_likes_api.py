"""
MeMantra Backend — Like API Tests
===================================

What we test:
    ✅ Like is idempotent (alreadyExists false then true, one row)
    ✅ Lost insert race on uq_likes_user_mantra → 200 alreadyExists true
    ✅ Unlike, check, liked list, and 404s
"""

from unittest.mock import AsyncMock, patch

import pytest

from app.models.like import Like
from app.services.like_service import like_service


class TestLikeApi:

    @pytest.mark.asyncio
    async def test_like_is_idempotent(self, client, make_user, make_mantra, count_rows):
        user, headers = await make_user()
        mantra = await make_mantra()
        url = f"/api/likes/{mantra.mantra_id}"

        first = await client.post(url, headers=headers)
        second = await client.post(url, headers=headers)

        assert first.json()["alreadyExists"] is False
        assert first.json()["message"] == "Mantra liked successfully"
        assert second.json()["alreadyExists"] is True
        assert await count_rows(Like, user_id=user.user_id, mantra_id=mantra.mantra_id) == 1

    @pytest.mark.asyncio
    async def test_lost_insert_race_reports_already_exists(
        self, client, make_user, make_mantra, count_rows
    ):
        user, headers = await make_user()
        mantra = await make_mantra()
        url = f"/api/likes/{mantra.mantra_id}"
        await client.post(url, headers=headers)

        with patch.object(like_service, "has_liked", AsyncMock(return_value=False)):
            response = await client.post(url, headers=headers)

        assert response.status_code == 200
        assert response.json()["alreadyExists"] is True
        assert await count_rows(Like, user_id=user.user_id, mantra_id=mantra.mantra_id) == 1

    @pytest.mark.asyncio
    async def test_like_unknown_mantra(self, client, make_user):
        _, headers = await make_user()

        response = await client.post("/api/likes/9999", headers=headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Mantra not found"

    @pytest.mark.asyncio
    async def test_check_unlike_and_unlike_again(self, client, make_user, make_mantra):
        _, headers = await make_user()
        mantra = await make_mantra()
        url = f"/api/likes/{mantra.mantra_id}"
        await client.post(url, headers=headers)

        check = await client.get(f"{url}/check", headers=headers)
        assert check.json() == {"status": "success", "data": {"hasLiked": True}}

        unliked = await client.delete(url, headers=headers)
        assert unliked.status_code == 200

        again = await client.delete(url, headers=headers)
        assert again.status_code == 404
        assert again.json() == {"status": "error", "message": "Like not found"}

        check = await client.get(f"{url}/check", headers=headers)
        assert check.json()["data"]["hasLiked"] is False

    @pytest.mark.asyncio
    async def test_liked_mantras_most_recent_first(self, client, make_user, make_mantra):
        _, headers = await make_user()
        older = await make_mantra(title="Older like")
        newer = await make_mantra(title="Newer like")
        await client.post(f"/api/likes/{older.mantra_id}", headers=headers)
        await client.post(f"/api/likes/{newer.mantra_id}", headers=headers)

        response = await client.get("/api/likes/mantras", headers=headers)

        titles = [m["title"] for m in response.json()["data"]["mantras"]]
        assert titles == ["Newer like", "Older like"]

    @pytest.mark.asyncio
    async def test_popular_is_public(self, client, make_mantra):
        await make_mantra()

        response = await client.get("/api/likes/popular")

        assert response.status_code == 200
        assert response.json()["data"]["mantras"][0]["like_count"] == 0
