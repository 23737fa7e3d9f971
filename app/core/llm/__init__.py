"""LLM integration layer.

Small and conservative on purpose:
- No prompt/output logging (may contain PHI).
- Configured from settings once per request, never read ad hoc.
- One chat-completion call per report, no retries.
"""
