"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Turn free-text dining context into structured venue requirements.
- Score a shortlist of venues for relevance to that context.
- Surface transport and schema failures as typed errors so callers can degrade.
"""
