"""
LLM integration layer.

Responsibilities:
- Talk to Groq with the settings from ``gappy.config.LLMConfig``.
- Build prompts from the travel type and candidate places.
- Call Groq LLM to re-rank places and explain each pick in the traveler's voice.
- Graceful fallback when the LLM is unavailable or returns invalid output.
"""
