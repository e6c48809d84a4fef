import io

from PIL import Image

from conftest import make_image
from mcoj_api.utils.image_converter import convert_to_webp, fit_inside, get_image_info, resize_for_gallery


def test_fit_inside_keeps_aspect_ratio():
    assert fit_inside((1600, 1200), (1200, 800)) == (1067, 800)
    assert fit_inside((2400, 800), (1200, 800)) == (1200, 400)
    # Small images are enlarged
    assert fit_inside((600, 400), (1200, 800)) == (1200, 800)


def test_resize_for_gallery_keeps_format():
    resized = Image.open(io.BytesIO(resize_for_gallery(make_image("PNG", size=(400, 800)), 1200, 800)))
    assert resized.format == "PNG"
    assert resized.size == (400, 800)


async def test_convert_to_webp():
    original = make_image(size=(5000, 1000))

    converted, ok = await convert_to_webp(original)

    assert ok is True
    info = get_image_info(converted)
    assert info["format"] == "WEBP"
    assert (info["width"], info["height"]) == (3840, 768)


async def test_convert_to_webp_reports_failure():
    converted, ok = await convert_to_webp(b"nope")
    assert ok is False
    assert converted == b"nope"


def test_get_image_info_unreadable():
    assert get_image_info(b"nope") is None


async def test_optimize_image_endpoint(client, auth_headers, media_root):
    response = await client.post(
        "/api/admin/optimize-image",
        files={"image": ("flyer.png", make_image("PNG", size=(800, 600)), "image/png")},
        data={"destination": "events", "filename": "flyer.png"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["path"] == "events/flyer.webp"
    assert body["info"]["format"] == "WEBP"
    assert (media_root / "events" / "flyer.webp").is_file()


async def test_optimize_image_rejects_bad_input(client, auth_headers):
    response = await client.post(
        "/api/admin/optimize-image",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers,
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/admin/optimize-image",
        files={"image": ("a.png", make_image("PNG"), "image/png")},
        data={"destination": "../outside"},
        headers=auth_headers,
    )
    assert response.status_code == 400
