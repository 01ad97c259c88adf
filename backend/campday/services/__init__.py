"""
Services Layer

Camp day rebuild logic:
- Pure timeline/stacking/remap algorithms that work on in-memory blocks
- Collaborator protocols the algorithms are wired through
- One SQLModel-backed store implementing those protocols
- Do NOT depend on HTTP request/response objects
"""
