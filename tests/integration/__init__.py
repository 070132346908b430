"""
Integration tests.

Integration tests exercise the wired cache layer end to end:
- Read-through with TTL expiry
- Write, invalidate, recompute
- Redis (fakeredis) and in-process backends side by side
- Unreachable Redis with per-call fallback
"""
