from datetime import date

from sqlalchemy import func, select

from beenaround.models import Comment, FlaggedContent, Follower, Like, Photo, Post, UserBlock, Wishlist


POST_FORM = {
    "country": "Portugal",
    "city": "Lisbon",
    "visit_date": "2024-06-10",
    "reason_for_visit": "Vacation",
    "overall_rating": "5",
    "experience": "Great pastries",
}


class TestCreatePost:

    async def test_create_post_with_photos(self, client, db, make_user, auth_headers, storage, png_bytes):
        user = await make_user()

        r = await client.post("/post", headers=auth_headers(user), data=POST_FORM, files=[
            ("photos", ("one.png", png_bytes, "image/png")),
            ("photos", ("two.png", png_bytes, "image/png")),
        ])

        assert r.status_code == 200
        post = r.json()["data"]
        assert post["country"] == "Portugal"
        assert post["continent"] == "Europe"
        assert post["like_count"] == 0
        assert post["user"]["id"] == user.id
        assert len(post["photos"]) == 2
        assert all(p["image_url"].startswith("http://test/media/uploads/") for p in post["photos"])
        assert len(storage.saved) == 2

    async def test_too_many_photos(self, client, db, make_user, auth_headers, png_bytes):
        user = await make_user()
        files = [("photos", (f"{i}.png", png_bytes, "image/png")) for i in range(6)]

        r = await client.post("/post", headers=auth_headers(user), data=POST_FORM, files=files)

        assert r.status_code == 422
        assert r.json()["message"] == "You can upload a maximum of 5 photos"
        assert await db.scalar(select(func.count(Post.id))) == 0

    async def test_bad_photo_leaves_no_post(self, client, db, storage, make_user, auth_headers, png_bytes):
        user = await make_user()

        r = await client.post("/post", headers=auth_headers(user), data=POST_FORM, files=[
            ("photos", ("good.png", png_bytes, "image/png")),
            ("photos", ("bad.png", b"not an image", "image/png")),
        ])

        assert r.status_code == 422
        assert await db.scalar(select(func.count(Post.id))) == 0
        assert await db.scalar(select(func.count(Photo.id))) == 0
        # The photo stored before the failure is removed again
        assert storage.saved == {}
        assert len(storage.deleted) == 1

    async def test_missing_city(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.post("/post", headers=auth_headers(user), data={**POST_FORM, "city": "  "})

        assert r.status_code == 422
        assert r.json()["message"] == "City is required"

    async def test_rating_out_of_range(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.post("/post", headers=auth_headers(user), data={**POST_FORM, "overall_rating": "6"})

        assert r.status_code == 422


class TestFeed:

    async def test_all_and_following_feeds(self, client, db, make_user, make_post, auth_headers):
        me = await make_user("me@example.com")
        friend = await make_user("friend@example.com")
        stranger = await make_user("stranger@example.com")
        db.add(Follower(follower_id=me.id, user_id=friend.id))
        await db.commit()
        friend_post = await make_post(friend, "Peru", "Lima")
        await make_post(stranger, "Chile", "Santiago")
        db.add(Like(user_id=me.id, post_id=friend_post.id))
        await db.commit()

        r = await client.get("/posts", headers=auth_headers(me), params={"type": 1})
        data = r.json()["data"]
        assert data["totalCount"] == 2
        assert data["totalPages"] == 1
        assert [p["city"] for p in data["posts"]] == ["Santiago", "Lima"]
        assert [p["isLiked"] for p in data["posts"]] == [False, True]

        r = await client.get("/posts", headers=auth_headers(me), params={"type": 2})
        data = r.json()["data"]
        assert [p["id"] for p in data["posts"]] == [friend_post.id]

    async def test_invalid_feed_type(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.get("/posts", headers=auth_headers(user), params={"type": 3})

        assert r.status_code == 422
        assert r.json()["message"] == "Invalid type. Use 1 for all posts or 2 for following"

    async def test_pagination(self, client, make_user, make_post, auth_headers):
        user = await make_user()
        for city in ("A", "B", "C"):
            await make_post(user, "France", city)

        r = await client.get("/posts", headers=auth_headers(user), params={"page": 2, "limit": 2})

        data = r.json()["data"]
        assert data["currentPage"] == 2
        assert data["totalPages"] == 2
        assert [p["city"] for p in data["posts"]] == ["A"]

    async def test_blocked_authors_are_hidden(self, client, db, make_user, make_post, auth_headers):
        me = await make_user("me@example.com")
        troll = await make_user("troll@example.com")
        await make_post(troll, "Spain", "Madrid")
        db.add(UserBlock(user_id=me.id, target_user_id=troll.id))
        await db.commit()

        r = await client.get("/posts", headers=auth_headers(me))

        assert r.json()["data"]["posts"] == []


class TestPostDetail:

    async def test_detail_with_comments(self, client, db, make_user, make_post, auth_headers):
        author = await make_user("author@example.com")
        reader = await make_user("reader@example.com")
        post = await make_post(author)
        await client.post(f"/post/comment/{post.id}", headers=auth_headers(reader), json={"comment": "Nice!"})
        await client.post("/post/wishlist", headers=auth_headers(reader), json={"post_id": post.id})

        r = await client.get(f"/post/{post.id}", headers=auth_headers(reader))

        assert r.status_code == 200
        data = r.json()["data"]
        assert data["post"]["comment_count"] == 1
        assert data["totalComments"] == 1
        assert data["comments"][0]["comment"] == "Nice!"
        assert data["comments"][0]["user"]["id"] == reader.id
        assert data["isLiked"] is False
        assert data["isWishlisted"] is True

    async def test_missing_post(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.get("/post/999", headers=auth_headers(user))

        assert r.status_code == 404
        assert r.json()["message"] == "Post not found"


class TestDeletePost:

    async def test_owner_deletes_post_and_photos(self, client, db, make_user, auth_headers, storage, png_bytes):
        user = await make_user()
        other = await make_user("other@example.com")
        r = await client.post("/post", headers=auth_headers(user), data=POST_FORM,
                              files=[("photos", ("one.png", png_bytes, "image/png"))])
        post_id = r.json()["data"]["id"]
        photo_url = r.json()["data"]["photos"][0]["image_url"]
        await client.post("/post/like", headers=auth_headers(other), json={"post_id": post_id})
        await client.post(f"/post/comment/{post_id}", headers=auth_headers(other), json={"comment": "Wow"})

        r = await client.delete(f"/post/{post_id}", headers=auth_headers(user))

        assert r.status_code == 200
        assert await db.scalar(select(func.count(Post.id))) == 0
        assert await db.scalar(select(func.count(Photo.id))) == 0
        assert await db.scalar(select(func.count(Like.id))) == 0
        assert await db.scalar(select(func.count(Comment.id))) == 0
        assert storage.deleted == [photo_url]

    async def test_only_owner_can_delete(self, client, db, make_user, make_post, auth_headers):
        author = await make_user("author@example.com")
        other = await make_user("other@example.com")
        post = await make_post(author)

        r = await client.delete(f"/post/{post.id}", headers=auth_headers(other))

        assert r.status_code == 403
        assert await db.scalar(select(func.count(Post.id))) == 1


class TestWishlist:

    async def test_toggle_and_list(self, client, db, make_user, make_post, auth_headers):
        me = await make_user("me@example.com")
        friend = await make_user("friend@example.com")
        db.add(Follower(follower_id=me.id, user_id=friend.id))
        await db.commit()
        post = await make_post(friend, "Japan", "Kyoto")
        await make_post(friend, "Japan", "Osaka")

        r = await client.post("/post/wishlist", headers=auth_headers(me), json={"post_id": post.id})
        assert r.json()["data"] == {"isWishlisted": True}
        assert await db.scalar(select(Wishlist.destination)) == "Kyoto,Japan"

        r = await client.get("/post/wishlist", headers=auth_headers(me))
        item = r.json()["data"][0]
        assert item["post"]["id"] == post.id
        assert item["cityVisitCount"] == 1
        assert item["countryVisitCount"] == 2
        assert [v["id"] for v in item["cityVisitors"]] == [friend.id]

        r = await client.post("/post/wishlist", headers=auth_headers(me), json={"post_id": post.id})
        assert r.json()["data"] == {"isWishlisted": False}
        assert await db.scalar(select(func.count(Wishlist.id))) == 0

    async def test_missing_post(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.post("/post/wishlist", headers=auth_headers(user), json={"post_id": 42})

        assert r.status_code == 404


class TestTopDestinationsAndUserDetails:

    async def test_top_destinations(self, client, make_user, make_post, auth_headers):
        user = await make_user()
        await make_post(user, "Egypt", "Cairo", visit_date=date(2023, 1, 1))
        await make_post(user, "Egypt", "Luxor", visit_date=date(2023, 2, 1))

        r = await client.get("/post/topDestinations", headers=auth_headers(user))

        items = {(i["type"], i["value"]): i for i in r.json()["data"]}
        egypt = items[("country", "egypt")]
        assert egypt["count"] == 2
        assert egypt["visitCount"] == 2
        assert [p["city"] for p in egypt["posts"]] == ["Luxor", "Cairo"]
        assert items[("continent", "africa")]["count"] == 2

    async def test_user_details(self, client, db, make_user, make_post, auth_headers):
        me = await make_user("me@example.com")
        other = await make_user("other@example.com")
        await make_post(other, "Mexico", "Cancun")

        r = await client.get(f"/post/userDetails/{other.id}", headers=auth_headers(me))
        data = r.json()["data"]
        assert data["user"]["id"] == other.id
        assert data["owner"] is False
        assert data["follow"] == "follow"
        assert data["isBlocked"] is False
        assert data["stats"]["totalPosts"] == 1

        await client.post("/follow/request", headers=auth_headers(me), json={"target_user_id": other.id})
        r = await client.get(f"/post/userDetails/{other.id}", headers=auth_headers(me))
        assert r.json()["data"]["follow"] == "requested"

        r = await client.get(f"/post/userDetails/{me.id}", headers=auth_headers(me))
        assert r.json()["data"]["owner"] is True
        assert r.json()["data"]["follow"] is None


class TestFlagPost:

    async def test_flag_once(self, client, db, make_user, make_post, auth_headers):
        author = await make_user("author@example.com")
        reporter = await make_user("reporter@example.com")
        post = await make_post(author)

        r = await client.post("/post/flag", headers=auth_headers(reporter),
                              json={"post_id": post.id, "reason": "Spam"})
        assert r.status_code == 200
        assert r.json()["data"]["status"] == "pending"

        r = await client.post("/post/flag", headers=auth_headers(reporter), json={"post_id": post.id})
        assert r.status_code == 422
        assert r.json()["message"] == "You have already flagged this post"
        assert await db.scalar(select(func.count(FlaggedContent.id))) == 1
