"""Model provider adapters.

Implementations support multiple LLM backends:
- Hosted chat-completions APIs over HTTP (ZhipuAI and compatible)
- OpenAI through the official SDK (optional dependency)
- Locally served models (Ollama)
- User-supplied model objects (passed through unchanged)
"""
