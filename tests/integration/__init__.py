"""
Integration tests for the grounded probe service.

Test components together over mocked HTTP transports:
- Full ladder against a scripted Gemini endpoint (httpx.MockTransport)
- API endpoints (FastAPI TestClient with dependency overrides)
"""
