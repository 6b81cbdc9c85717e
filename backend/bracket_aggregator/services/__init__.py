"""
Services Layer

Pure business logic services that:
- Accept domain inputs (group ids, slot indexes, match ids)
- Return domain outputs (records, views, composed tournament state)
- Do NOT depend on HTTP request/response objects
- Talk to the remote match and team services only through the two clients
"""
