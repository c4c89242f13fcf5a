"""附件 API 测试

测试内容：
1. POST /api/svg/upload 批次中跳过非 SVG 文件，按顺序返回描述符
2. 没有有效文件返回 400
3. GET /api/svg/{key} 返回规范文档与长期缓存头，未知 key 返回 404
4. POST /api/ink 保存手写画布，空画布返回 400
"""

from httpx import AsyncClient
from inkchat.core.registry import AttachmentRegistry
from inkchat.gateway.services.attachment_service import AttachmentService

TALL_SVG = b'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 50 200"><rect width="50" height="200"/></svg>'
PLAIN_SVG = b"<svg><circle r=\"10\"/></svg>"


def _form(message_id: str = "m1") -> dict[str, str]:
    return {"room": "r1", "user": "alice", "messageId": message_id}


class TestUpload:
    """SVG 上传"""

    async def test_non_svg_skipped(self, client: AsyncClient):
        """3 个文件其中一个 .png -> 2 个描述符，保持提交顺序"""
        files = [
            ("svgs", ("tall.svg", TALL_SVG, "image/svg+xml")),
            ("svgs", ("photo.png", b"\x89PNG\r\n", "image/png")),
            ("svgs", ("plain.svg", PLAIN_SVG, "application/octet-stream")),
        ]
        resp = await client.post("/api/svg/upload", files=files, data=_form())

        assert resp.status_code == 200
        svgs = resp.json()["svgs"]
        assert [s["filename"] for s in svgs] == ["tall.svg", "plain.svg"]
        assert svgs[0]["url"] == f"/api/svg/svgs/r1/alice/m1/{svgs[0]['id']}-tall.svg"
        assert svgs[1]["url"] == f"/api/svg/svgs/r1/alice/m1/{svgs[1]['id']}-plain.svg"
        assert svgs[0]["id"] != svgs[1]["id"]

    async def test_defaults_applied(self, client: AsyncClient):
        files = [("svgs", ("a.svg", PLAIN_SVG, "image/svg+xml"))]
        resp = await client.post("/api/svg/upload", files=files)

        assert resp.status_code == 200
        url = resp.json()["svgs"][0]["url"]
        assert url.startswith("/api/svg/svgs/default/anonymous/")
        assert url.endswith("-a.svg")

    async def test_unsafe_names_sanitized(self, client: AsyncClient):
        files = [("svgs", ("evil name.svg", PLAIN_SVG, "image/svg+xml"))]
        resp = await client.post(
            "/api/svg/upload",
            files=files,
            data={"room": "room/../x", "user": "al ice", "messageId": "m1"},
        )

        assert resp.status_code == 200
        (attachment,) = resp.json()["svgs"]
        assert attachment["url"] == (
            f"/api/svg/svgs/room____x/al_ice/m1/{attachment['id']}-evil_name.svg"
        )
        assert attachment["filename"] == "evil name.svg"

    async def test_non_ascii_names_do_not_collide(self, client: AsyncClient):
        """清洗后同名的两个文件各自保留自己的内容"""
        files = [
            ("svgs", ("猫.svg", b'<svg id="CAT"><path/></svg>', "image/svg+xml")),
            ("svgs", ("狗.svg", b'<svg id="DOG"><path/></svg>', "image/svg+xml")),
        ]
        resp = await client.post("/api/svg/upload", files=files, data=_form())

        assert resp.status_code == 200
        cat, dog = resp.json()["svgs"]
        assert cat["filename"] == "猫.svg"
        assert dog["filename"] == "狗.svg"
        assert cat["url"] != dog["url"]

        cat_body = (await client.get(cat["url"])).text
        dog_body = (await client.get(dog["url"])).text
        assert 'id="CAT"' in cat_body
        assert 'id="DOG"' not in cat_body
        assert 'id="DOG"' in dog_body

    async def test_no_files(self, client: AsyncClient):
        resp = await client.post("/api/svg/upload", data=_form())
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "NO_VALID_FILES"

    async def test_only_non_svg(self, client: AsyncClient):
        files = [("svgs", ("photo.png", b"\x89PNG", "image/png"))]
        resp = await client.post("/api/svg/upload", files=files, data=_form())
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "NO_VALID_FILES"

    async def test_geometry_failure_skipped(self, client: AsyncClient):
        files = [
            ("svgs", ("flat.svg", b'<svg viewBox="0 0 0 0"></svg>', "image/svg+xml")),
            ("svgs", ("ok.svg", PLAIN_SVG, "image/svg+xml")),
        ]
        resp = await client.post("/api/svg/upload", files=files, data=_form())
        assert resp.status_code == 200
        assert [s["filename"] for s in resp.json()["svgs"]] == ["ok.svg"]

    async def test_oversized_file_skipped(self, app, client: AsyncClient):
        store_group = app.state.store_group
        app.state.attachment_service = AttachmentService(
            AttachmentRegistry(store_group.object_store), store_group.object_store, 64
        )
        files = [("svgs", ("big.svg", TALL_SVG, "image/svg+xml"))]
        resp = await client.post("/api/svg/upload", files=files, data=_form())
        assert resp.status_code == 400


class TestRetrieval:
    """附件读取"""

    async def test_get_canonical_document(self, client: AsyncClient):
        files = [("svgs", ("tall.svg", TALL_SVG, "image/svg+xml"))]
        upload = await client.post("/api/svg/upload", files=files, data=_form())
        url = upload.json()["svgs"][0]["url"]

        resp = await client.get(url)

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("image/svg+xml")
        assert resp.headers["cache-control"] == "public, max-age=31536000"
        assert "etag" in resp.headers
        body = resp.text
        assert 'viewBox="0 0 300 300"' in body
        assert 'transform="translate(112.5,0) scale(1.5)"' in body

    async def test_unknown_key(self, client: AsyncClient):
        resp = await client.get("/api/svg/svgs/r1/alice/m1/missing.svg")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "ATTACHMENT_NOT_FOUND"


class TestInk:
    """手写画布保存"""

    async def test_save_ink(self, client: AsyncClient):
        resp = await client.post(
            "/api/ink",
            json={
                "room": "r1",
                "user": "bob",
                "messageId": "m2",
                "strokes": [{"points": [[10, 10], [20, 30]], "stroke_width": 2}],
            },
        )

        assert resp.status_code == 200
        (attachment,) = resp.json()["svgs"]
        assert attachment["filename"].startswith("handwriting-")
        assert attachment["url"].startswith(f"/api/svg/svgs/r1/bob/m2/{attachment['id']}-handwriting-")

        stored = await client.get(attachment["url"])
        assert stored.status_code == 200
        assert 'viewBox="0 0 300 300"' in stored.text
        assert 'd="M10,10 L20,30"' in stored.text

    async def test_empty_canvas(self, client: AsyncClient):
        resp = await client.post("/api/ink", json={"room": "r1", "user": "bob", "strokes": []})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "EMPTY_CANVAS"

    async def test_only_taps(self, client: AsyncClient):
        resp = await client.post(
            "/api/ink",
            json={"strokes": [{"points": [[1, 1]]}, {"points": [[5, 5]]}]},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "EMPTY_CANVAS"

    async def test_repeated_saves_keep_both(self, client: AsyncClient):
        payload = {
            "room": "r1",
            "user": "bob",
            "messageId": "m2",
            "strokes": [{"points": [[0, 0], [5, 5]]}],
        }
        first = (await client.post("/api/ink", json=payload)).json()["svgs"][0]
        second = (await client.post("/api/ink", json=payload)).json()["svgs"][0]
        assert first["url"] != second["url"]

    async def test_non_finite_points_rejected(self, client: AsyncClient):
        resp = await client.post(
            "/api/ink",
            content=b'{"strokes": [{"points": [[0, 0], [Infinity, 5]]}]}',
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 422

    async def test_overflowing_bounds(self, client: AsyncClient):
        """坐标有限但包围盒溢出时返回 400 而不是 500"""
        resp = await client.post(
            "/api/ink",
            json={"strokes": [{"points": [[-1e308, 0], [1e308, 0]]}]},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "GEOMETRY_ERROR"

    async def test_invalid_stroke_width(self, client: AsyncClient):
        resp = await client.post(
            "/api/ink",
            json={"strokes": [{"points": [[1, 1], [2, 2]], "stroke_width": 0}]},
        )
        assert resp.status_code == 422
