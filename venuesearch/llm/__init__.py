"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Build the query-translation prompt from the known category vocabulary and
  the optional user location.
- Call the Groq LLM once, deterministically, and parse its JSON answer into a
  search configuration, failing with distinct errors for bad JSON and bad shape.
"""
