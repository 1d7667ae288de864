"""
Context-aware venue ranking engine.

Responsibilities:
- Accept a position, structured filters, preference weights and free-text context.
- Narrow the candidate pool geographically and order it by the requested signal.
- Enrich the ordering with NLU-derived constraints and relevance scores.
- Return paginated results ready for API serialisation.
"""
