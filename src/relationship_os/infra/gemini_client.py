"""Gemini model factory for Relationship OS agents."""

import google.generativeai as genai


def get_model(
    api_key: str,
    model_name: str = "gemini-2.0-flash",
    temperature: float = 0.7,
    system_instruction: str | None = None,
):
    """Return a configured Gemini GenerativeModel instance.

    Args:
        api_key: Gemini API key from ``Settings.gemini_api_key``.
        model_name: Gemini model identifier.
        temperature: Generation temperature (0.0-2.0).
        system_instruction: Optional system-level instruction.

    Returns:
        A ``google.generativeai.GenerativeModel`` ready for generation.
    """
    genai.configure(api_key=api_key)

    return genai.GenerativeModel(
        model_name=model_name,
        generation_config={"temperature": temperature},
        system_instruction=system_instruction,
    )
