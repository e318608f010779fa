"""
Tests for the Flask HTTP surface
================================
"""

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
from unittest.mock import AsyncMock

from floatchat.chatbot import Dispatcher, Mode, Response
from floatchat.chatbot.dispatcher import FAILURE_PREFIXES
from floatchat.config import LLMSettings, Settings
from floatchat.error_handling import MalformedUpstreamResponse
from floatchat.main import create_app

API_KEY = "sk-test-0123456789abcdefghij"

COMPLETION = {
    "id": "chatcmpl-local",
    "object": "chat.completion",
    "created": 0,
    "model": "gpt-3.5-turbo",
    "choices": [{
        "index": 0,
        "message": {"role": "assistant", "content": "Upstream says hi"},
        "finish_reason": "stop",
    }],
    "usage": {"prompt_tokens": 10, "completion_tokens": 3, "total_tokens": 13},
}


class StubUpstream(BaseHTTPRequestHandler):
    """Answers every POST with the server's canned body, keeping connections alive."""
    protocol_version = "HTTP/1.1"

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        self.server.paths.append(self.path)

        body = self.server.body
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def upstream():
    server = ThreadingHTTPServer(("127.0.0.1", 0), StubUpstream)
    server.body = json.dumps(COMPLETION).encode()
    server.paths = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield server

    server.shutdown()
    server.server_close()


@pytest.fixture
def app():
    return create_app(settings=Settings())


@pytest.fixture
def client(app):
    return app.test_client()


class TestChatEndpoint:
    """Test POST /chat."""

    def test_arithmetic_offline(self, client):
        resp = client.post('/chat', json={'message': '15 + 25'})

        assert resp.status_code == 200
        data = resp.get_json()
        assert data['kind'] == 'text'
        assert '15 + 25 = 40' in data['text']
        assert data['source'] == 'fallback'

    def test_standard_mode_redirect(self, client):
        resp = client.post('/chat', json={
            'message': 'Show me temperature trends near the equator.',
            'mode': 'standard',
            'history': [],
        })

        data = resp.get_json()
        assert data['kind'] == 'text'
        assert 'Visual Discovery' in data['text']
        assert data['data'] is None

    def test_visual_mode_series_payload(self, client):
        resp = client.post('/chat', json={'message': 'temperature anomalies', 'mode': 'visual'})

        data = resp.get_json()
        assert data['kind'] == 'series'
        assert data['data']['x_key'] == 'year'
        assert data['data']['y_keys'] == ['anomaly']

    def test_deep_mode_geo_payload(self, client):
        resp = client.post('/chat', json={'message': 'Map the deep-sea trenches', 'mode': 'deep'})

        data = resp.get_json()
        assert data['kind'] == 'geo'
        assert data['data']['points'][0]['name'] == 'Mariana Trench'
        assert data['data']['points'][0]['depth'] == 10935

    def test_empty_message_clarifies(self, client):
        resp = client.post('/chat', json={'message': '   '})

        assert resp.status_code == 200
        assert "didn't catch that" in resp.get_json()['text']

    @pytest.mark.parametrize('payload', [
        {},
        {'message': 42},
        {'message': 'hello', 'mode': 'turbo'},
        {'message': 'hello', 'history': 'not a list'},
        {'message': 'hello', 'history': [{'sender': 'user'}]},
        {'message': 'hello', 'history': ['plain string']},
        {'message': 'hello', 'history': [{'sender': 'user', 'text': 'x', 'timestamp': 1e30}]},
    ])
    def test_bad_requests(self, client, payload):
        resp = client.post('/chat', json=payload)

        assert resp.status_code == 400
        assert 'error' in resp.get_json()

    def test_passes_history_to_dispatcher(self):
        dispatcher = Dispatcher()
        dispatcher.respond = AsyncMock(return_value=Response.text_only("ok", source="upstream"))
        client = create_app(settings=Settings(), dispatcher=dispatcher).test_client()

        resp = client.post('/chat', json={
            'message': 'next',
            'mode': 'default',
            'history': [{'sender': 'ai', 'text': 'Welcome!', 'timestamp': 1700000000000}],
        })

        assert resp.get_json()['text'] == 'ok'
        message, mode, history = dispatcher.respond.call_args.args
        assert message == 'next'
        assert mode == Mode.UNSET
        assert history[0].text == 'Welcome!'


class TestOtherEndpoints:
    """Test GET /welcome and GET /health."""

    def test_welcome(self, client):
        resp = client.get('/welcome?mode=deep')

        assert resp.status_code == 200
        text = resp.get_json()['text']
        assert 'You are in **DEEP** mode.' in text
        assert 'ARGO floats' in text

    def test_welcome_without_mode(self, client):
        assert 'choose a mode' in client.get('/welcome').get_json()['text']

    def test_welcome_bad_mode(self, client):
        assert client.get('/welcome?mode=turbo').status_code == 400

    def test_health(self, client):
        data = client.get('/health').get_json()

        assert data['status'] == 'ok'
        assert data['upstream_configured'] is False
        assert data['app_name'] == 'FloatChat'


class TestUpstreamEndpoint:
    """Test POST /chat against a local upstream server."""

    def test_openai_upstream_across_requests(self, upstream):
        """Every request gets an upstream answer, not just the first."""
        port = upstream.server_address[1]
        settings = Settings(llm=LLMSettings(api_key=API_KEY, api_base=f"http://127.0.0.1:{port}/v1"))
        client = create_app(settings=settings).test_client()

        for _ in range(3):
            data = client.post('/chat', json={'message': 'What is an ARGO float?'}).get_json()

            assert data['source'] == 'upstream'
            assert data['text'] == 'Upstream says hi'

        assert upstream.paths == ['/v1/chat/completions'] * 3

    def test_self_hosted_upstream_across_requests(self, upstream):
        port = upstream.server_address[1]
        settings = Settings(llm=LLMSettings(provider='self_hosted', api_base=f"http://127.0.0.1:{port}"))
        client = create_app(settings=settings).test_client()

        for _ in range(2):
            data = client.post('/chat', json={'message': 'hello'}).get_json()
            assert (data['source'], data['text']) == ('upstream', 'Upstream says hi')

    def test_undecodable_upstream_reply_answers_offline(self, upstream):
        upstream.body = b'{"choices":[{"message":{"content":"\xff\xfe bad"}}]}'
        port = upstream.server_address[1]
        settings = Settings(llm=LLMSettings(provider='self_hosted', api_base=f"http://127.0.0.1:{port}"))
        client = create_app(settings=settings).test_client()

        data = client.post('/chat', json={'message': '15 + 25'}).get_json()

        assert data['text'].startswith(FAILURE_PREFIXES[MalformedUpstreamResponse])
        assert '15 + 25 = 40' in data['text']
