"""
Unit tests for the grounded probe service.

Test individual components in isolation:
- Gemini client classification (httpx.MockTransport)
- Escalation ladder, backoff and cooldown gate
- Search strategies and the orchestrator
- PostgREST client and repository
- Configuration and prompt catalog
"""
