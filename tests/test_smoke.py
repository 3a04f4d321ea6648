"""Basic smoke tests for the FastAPI backend.

These tests exercise the caption proxy, watermark and post generation
endpoints through the FastAPI TestClient against the app defined in
``main.py``. The destination store and preview controller are swapped for
fresh instances so that every test starts from a clean state and writes
only into its own temporary directory.
"""

import base64
import io
import zipfile

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from publishing.destination_store import DestinationStore, JsonFileBackend
from watermark.batch import WatermarkPreviewController


def _jpeg(size, color=(0, 0, 0)):
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="JPEG")
    return buf.getvalue()


def _png_logo():
    buf = io.BytesIO()
    Image.new("RGBA", (20, 10), (255, 255, 255, 255)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def temp_dirs(tmp_path, monkeypatch):
    """Point the app at a sandboxed data directory and disable AI providers."""
    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("DATA_DIR", str(data_dir))
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("CAPTION_BACKEND_URL", raising=False)
    return data_dir


@pytest.fixture
def store(temp_dirs):
    return DestinationStore(JsonFileBackend(temp_dirs / "saved_pages.json"))


@pytest.fixture
def client(store):
    import main

    preview = WatermarkPreviewController()
    main.app.dependency_overrides[main.get_destination_store] = lambda: store
    main.app.dependency_overrides[main.get_preview_controller] = lambda: preview
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def test_generate_caption_missing_parameters(client):
    resp = client.post("/api/generate-caption", json={"topic": "Summer sale"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required parameters: topic, framework, model"}


def test_generate_caption_not_configured(client):
    resp = client.post(
        "/api/generate-caption",
        json={"topic": "Summer sale", "framework": "aida", "model": "gpt-4o"},
    )
    assert resp.status_code == 500
    assert resp.json() == {"error": "AI service is not configured on the server."}


def test_generate_caption_forwards_upstream_status(client, monkeypatch):
    import main
    from errors import RequestError

    def failing(topic, framework, model):
        raise RequestError("Incorrect API key provided", status_code=401)

    monkeypatch.setattr(main.caption_proxy, "generate_caption", failing)
    resp = client.post(
        "/api/generate-caption",
        json={"topic": "Summer sale", "framework": "aida", "model": "gpt-4o"},
    )
    assert resp.status_code == 401
    assert resp.json() == {"error": "Incorrect API key provided"}


def test_generate_caption_success(client, monkeypatch):
    import main

    monkeypatch.setattr(main.caption_proxy, "generate_caption", lambda topic, framework, model: "Hi! #sale")
    resp = client.post(
        "/api/generate-caption",
        json={"topic": "Summer sale", "framework": "pas", "model": "gpt-4o"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"caption": "Hi! #sale"}


def test_watermark_preview_and_download(client):
    files = [
        ("images", ("a.jpg", _jpeg((64, 48)), "image/jpeg")),
        ("images", ("b.jpg", b"garbage", "image/jpeg")),
        ("images", ("c.jpg", _jpeg((80, 40)), "image/jpeg")),
        ("logo", ("logo.png", _png_logo(), "image/png")),
    ]
    resp = client.post(
        "/watermark/preview",
        files=files,
        data={"position": "center", "scale": "20", "opacity": "50"},
    )
    assert resp.status_code == 200, resp.text
    payload = resp.json()
    assert [img["index"] for img in payload["images"]] == [0, 2]
    assert [img["filename"] for img in payload["images"]] == ["watermarked_image_1.jpg", "watermarked_image_2.jpg"]
    assert payload["failures"][0]["index"] == 1
    header, b64 = payload["images"][0]["data_url"].split(",", 1)
    assert header == "data:image/jpeg;base64"
    with Image.open(io.BytesIO(base64.b64decode(b64))) as img:
        assert img.size == (64, 48)

    resp = client.get("/watermark/images/2")
    assert resp.status_code == 200
    assert 'filename="watermarked_image_2.jpg"' in resp.headers["content-disposition"]
    with Image.open(io.BytesIO(resp.content)) as img:
        assert img.size == (80, 40)

    assert client.get("/watermark/images/3").status_code == 404

    resp = client.get("/watermark/images.zip")
    assert resp.status_code == 200
    with zipfile.ZipFile(io.BytesIO(resp.content)) as archive:
        assert archive.namelist() == ["watermarked_image_1.jpg", "watermarked_image_2.jpg"]


def test_watermark_preview_without_logo_is_empty(client):
    files = [("images", ("a.jpg", _jpeg((64, 48)), "image/jpeg"))]
    resp = client.post("/watermark/preview", files=files)
    assert resp.status_code == 200
    assert resp.json()["images"] == []
    assert client.get("/watermark/images.zip").status_code == 404


def test_generate_caption_unexpected_upstream_body(client, monkeypatch):
    import main

    real_generate = main.caption_proxy.generate_caption
    upstream = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": 5})))

    def with_mock_upstream(topic, framework, model):
        return real_generate(topic, framework, model, api_key="sk-test", client=upstream)

    monkeypatch.setattr(main.caption_proxy, "generate_caption", with_mock_upstream)
    resp = client.post(
        "/api/generate-caption",
        json={"topic": "Summer sale", "framework": "aida", "model": "gpt-4o"},
    )
    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json()["error"].startswith("Server error:")


def test_generate_caption_unexpected_exception_is_json(client, monkeypatch):
    import main

    def exploding(topic, framework, model):
        raise TypeError("unexpected")

    monkeypatch.setattr(main.caption_proxy, "generate_caption", exploding)
    resp = client.post(
        "/api/generate-caption",
        json={"topic": "Summer sale", "framework": "aida", "model": "gpt-4o"},
    )
    assert resp.status_code == 500
    assert resp.json() == {"error": "Server error: unexpected"}


def test_watermark_preview_non_numeric_settings_use_defaults(client):
    files = [
        ("images", ("a.jpg", _jpeg((64, 48)), "image/jpeg")),
        ("logo", ("logo.png", _png_logo(), "image/png")),
    ]
    resp = client.post("/watermark/preview", files=files, data={"scale": "big", "opacity": ""})
    assert resp.status_code == 200, resp.text
    assert len(resp.json()["images"]) == 1


def test_watermark_preview_bad_logo(client):
    files = [
        ("images", ("a.jpg", _jpeg((64, 48)), "image/jpeg")),
        ("logo", ("logo.png", b"nope", "image/png")),
    ]
    resp = client.post("/watermark/preview", files=files)
    assert resp.status_code == 400


def test_generate_posts_saves_pages(client, store, monkeypatch):
    import main

    class StubProvider:
        name = "stub"

        def generate_caption(self, topic, framework, model_hint=None):
            return f"All about {topic}  "

    monkeypatch.setattr(main, "get_caption_provider", lambda provider: StubProvider())
    resp = client.post(
        "/posts/generate",
        json={
            "topic": "Summer sale",
            "framework": "aida",
            "provider": "openai",
            "destinations": [
                {"url": "https://facebook.com/acme", "contactInfo": "Call 555-1234"},
                {"url": "not a url", "contactInfo": ""},
                {"url": "", "contactInfo": ""},
            ],
        },
    )
    assert resp.status_code == 200, resp.text
    posts = resp.json()["posts"]
    assert [p["label"] for p in posts] == ["acme", "not a url"]
    assert posts[0]["final_caption"] == "All about Summer sale\n\n---\n\nCall 555-1234"
    assert posts[1]["final_caption"] == "All about Summer sale"
    assert store.urls() == ["https://facebook.com/acme"]

    resp = client.get("/destinations")
    assert resp.json() == {"destinations": [{"url": "https://facebook.com/acme", "contactInfo": "Call 555-1234"}]}


def test_generate_posts_shows_caption_errors(client):
    resp = client.post("/posts/generate", json={"topic": "Summer sale", "provider": "openai"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["caption"].startswith("Error:")
    assert len(body["posts"]) == 1
    assert body["posts"][0]["label"] == "Your Page Name"


def test_generate_posts_requires_topic(client):
    resp = client.post("/posts/generate", json={"topic": "  "})
    assert resp.status_code == 400
