"""Caption agents.

Providers that write social media captions (Gemini on Vertex AI, OpenAI
through the server proxy), the copywriting framework prompts they share and
the client that selects between them.
"""
