import json
from types import SimpleNamespace

import pytest
from openai import OpenAIError

import config
import routers.assistant as assistant
from assistant_context import build_messages, discussions_from_payload, parse_json_list
from scripts.create_sample_pdfs import HS100_INSTALL, create_pdf


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeStream:
    def __init__(self, parts, fail_after=None):
        self.parts = parts
        self.fail_after = fail_after

    def __aiter__(self):
        return self._gen()

    async def _gen(self):
        for i, part in enumerate(self.parts):
            if self.fail_after is not None and i == self.fail_after:
                raise OpenAIError("stream broke")
            yield _chunk(part)


class FakeCompletions:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def fake_openai(monkeypatch, fake_embeddings):
    def _install(result=None, error=None, embedding_error=None):
        completions = FakeCompletions(result=result, error=error)
        client = SimpleNamespace(
            chat=SimpleNamespace(completions=completions),
            embeddings=fake_embeddings(error=embedding_error),
        )
        monkeypatch.setattr(assistant, "_get_async_openai_client", lambda: client)
        return completions

    return _install


def _events(body: str):
    return [json.loads(block[len("data: "):]) for block in body.split("\n\n") if block.startswith("data: ")]


class TestChat:
    def test_streams_content_events(self, client, fake_openai):
        completions = fake_openai(result=FakeStream(["Hello", None, " world"]))

        resp = client.post("/api/assistant/chat", json={"message": "Hi"})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        assert resp.text == 'data: {"content": "Hello"}\n\ndata: {"content": " world"}\n\n'
        call = completions.calls[0]
        assert call["stream"] is True
        assert call["model"] == config.OPENAI_MODEL
        assert call["messages"][-1] == {"role": "user", "content": "Hi"}

    def test_history_and_highlight(self, client, fake_openai):
        completions = fake_openai(result=FakeStream(["ok"]))

        client.post(
            "/api/assistant/chat",
            json={
                "message": "And the brake?",
                "highlighted_text": "Check belt tension",
                "previous_messages": [
                    {"sender": "user", "text": "How often to service?"},
                    {"sender": "assistant", "text": "Every 6 months."},
                ],
            },
        )

        messages = completions.calls[0]["messages"]
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[0]["content"].startswith("You are DoorMate")
        assert 'highlighted this text from the manual:\n"Check belt tension"' in messages[0]["content"]

    def test_product_manual_and_discussion_context(self, client, fake_openai, create_product, user_headers):
        create_pdf("HS100 Installation Manual", HS100_INSTALL, config.MANUALS_DIR / "chat-hs100-install.pdf")
        product = create_product()
        client.post(
            f"/api/products/{product['id']}/comments",
            data={"text": "Remember to level the side guides first."},
            headers=user_headers,
        )
        completions = fake_openai(result=FakeStream(["ok"]))

        resp = client.post(
            "/api/assistant/chat",
            json={
                "message": "How do I install the header assembly?",
                "product_id": product["id"],
                "product_type": "door",
                "manual_url": "http://192.168.0.158:5001/manuals/chat-hs100-install.pdf",
            },
        )

        assert resp.status_code == 200
        system = completions.calls[0]["messages"][0]["content"]
        assert "This conversation is about the High-Speed Roll-Up Door HS100 (HS100)" in system
        assert "manufactured by Dynaco" in system
        assert "Safety features: Light Curtain, Safety Edge" in system
        assert "[Pages 3-3]:" in system
        assert "- jan_novak: Remember to level the side guides first." in system

        embeddings = assistant._get_async_openai_client().embeddings
        assert embeddings.calls[0]["model"] == config.OPENAI_EMBEDDING_MODEL
        assert embeddings.calls[-1]["input"] == ["How do I install the header assembly?"]

    def test_manual_pages_embedded_once(self, client, fake_openai):
        create_pdf("HS100 Installation Manual", HS100_INSTALL, config.MANUALS_DIR / "chat-cached.pdf")
        fake_openai(result=FakeStream(["ok"]))
        body = {"message": "Which tools do I need?", "manual_url": "/manuals/chat-cached.pdf"}

        client.post("/api/assistant/chat", json=body)
        fake_openai(result=FakeStream(["ok"]))
        client.post("/api/assistant/chat", json=body)

        # druhý dotaz embeduje jen otázku, vektory stránek jdou z cache
        embeddings = assistant._get_async_openai_client().embeddings
        assert [len(c["input"]) for c in embeddings.calls] == [1]

    def test_embedding_failure_skips_manual(self, client, fake_openai):
        create_pdf("HS100 Installation Manual", HS100_INSTALL, config.MANUALS_DIR / "chat-no-embed.pdf")
        completions = fake_openai(result=FakeStream(["ok"]), embedding_error=OpenAIError("embeddings down"))

        resp = client.post(
            "/api/assistant/chat",
            json={"message": "How do I install it?", "manual_url": "/manuals/chat-no-embed.pdf"},
        )

        assert resp.status_code == 200
        assert "Relevant Manual Content" not in completions.calls[0]["messages"][0]["content"]

    def test_discussions_payload_wins_over_db(self, client, fake_openai, create_product):
        product = create_product()
        completions = fake_openai(result=FakeStream(["ok"]))

        client.post(
            "/api/assistant/chat",
            json={
                "message": "Any tips?",
                "product_id": product["id"],
                "product_type": "door",
                "discussions": json.dumps([{"text": "Use torque wrench", "user": {"username": "karel"}}]),
            },
        )

        system = completions.calls[0]["messages"][0]["content"]
        assert "- karel: Use torque wrench" in system

    def test_control_system_alias(self, client, fake_openai):
        fake_openai(result=FakeStream(["ok"]))
        resp = client.post(
            "/api/assistant/chat",
            json={"message": "Hi", "product_id": 1, "product_type": "controlSystem"},
        )
        assert resp.status_code == 200

    def test_missing_message(self, client, fake_openai):
        fake_openai(result=FakeStream([]))
        resp = client.post("/api/assistant/chat", json={})
        assert resp.status_code == 400
        assert "message" in resp.json()["errors"]

    def test_bad_discussions_json(self, client, fake_openai):
        fake_openai(result=FakeStream([]))
        resp = client.post("/api/assistant/chat", json={"message": "Hi", "discussions": "{not json"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "discussions must be a JSON encoded list"

    def test_provider_error_before_stream(self, client, fake_openai):
        fake_openai(error=OpenAIError("invalid api key"))

        resp = client.post("/api/assistant/chat", json={"message": "Hi"})

        assert resp.status_code == 500
        assert resp.json() == {"message": "Error processing request", "details": "invalid api key"}

    def test_provider_error_while_streaming(self, client, fake_openai):
        fake_openai(result=FakeStream(["Part one", "never sent"], fail_after=1))

        resp = client.post("/api/assistant/chat", json={"message": "Hi"})

        assert resp.status_code == 200
        assert _events(resp.text) == [{"content": "Part one"}, {"error": "stream broke"}]


class TestConnectionCheck:
    def test_success(self, client, fake_openai):
        message = SimpleNamespace(content="OpenAI connection successful!")
        completions = fake_openai(result=SimpleNamespace(choices=[SimpleNamespace(message=message)]))

        resp = client.get("/api/assistant/test")

        assert resp.json() == {"success": True, "message": "OpenAI connection successful!"}
        assert completions.calls[0]["stream"] is False

    def test_failure(self, client, fake_openai):
        fake_openai(error=OpenAIError("quota exceeded"))
        resp = client.get("/api/assistant/test")
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "quota exceeded"}


def test_parse_json_list_ignores_non_objects():
    assert parse_json_list('[{"a": 1}, 2, "x"]', "manuals") == [{"a": 1}]
    assert parse_json_list(None, "manuals") == []
    with pytest.raises(ValueError):
        parse_json_list('{"a": 1}', "manuals")


def test_discussions_from_payload_limits_and_truncates():
    items = [{"text": "z" * 600, "username": "eva"}] + [{"text": f"t{i}"} for i in range(20)]
    lines = discussions_from_payload(items)
    assert len(lines) == 10
    assert lines[0].startswith("- eva: zzz")
    assert lines[0].endswith("...")
    assert lines[1] == "- user: t0"


def test_build_messages_maps_senders():
    messages = build_messages("sys", [{"sender": "assistant", "text": "a"}, {"sender": "user", "text": "b"}], "c")
    assert messages == [
        {"role": "system", "content": "sys"},
        {"role": "assistant", "content": "a"},
        {"role": "user", "content": "b"},
        {"role": "user", "content": "c"},
    ]
