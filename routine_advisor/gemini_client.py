from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import google.generativeai as genai


class GeminiClient:
    """Thin wrapper around the Gemini SDK with model caching."""

    def __init__(self, api_key: str, model: str) -> None:
        """Purpose: Configure the Gemini SDK and initialize the model cache.
        Inputs/Outputs: Inputs are the API key and default model name; no return value.
        Side Effects / State: Configures the SDK global API key.
        Dependencies: Uses google.generativeai.
        Failure Modes: Raises ValueError if API key or model name is missing.
        If Removed: Routines can only come from a worker URL or the local preview.
        Testing Notes: Validate missing key raises ValueError.
        """
        # Configure API key and remember the default model.
        if not api_key:
            raise ValueError("GEMINI_API_KEY is required")
        self._default_model = _normalize_model_name(model)
        if not self._default_model:
            raise ValueError("Gemini model name is required")
        genai.configure(api_key=api_key)
        self._models: Dict[Tuple[str, str], genai.GenerativeModel] = {}

    def _model(self, model_name: str, system_instruction: str) -> genai.GenerativeModel:
        key = (model_name, system_instruction)
        if key not in self._models:
            if system_instruction:
                self._models[key] = genai.GenerativeModel(model_name, system_instruction=system_instruction)
            else:
                self._models[key] = genai.GenerativeModel(model_name)
        return self._models[key]

    async def generate_chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.4,
        max_output_tokens: int = 2048,
    ) -> str:
        """Purpose: Generate a reply for role/content chat messages.
        Inputs/Outputs: Input is the outbound ``messages`` list; returns reply text.
        Side Effects / State: May add a model to the internal cache.
        Dependencies: Uses GenerativeModel.generate_content_async and to_contents.
        Failure Modes: SDK errors propagate; blocked responses yield an empty string.
        If Removed: The Gemini backend cannot answer.
        Testing Notes: Check that system messages become the system instruction.
        """
        # Split system text from turns and call the cached model.
        model_name = _normalize_model_name(model) if model else self._default_model
        system_instruction, contents = to_contents(messages)
        response = await self._model(model_name, system_instruction).generate_content_async(
            contents,
            generation_config={
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            },
        )
        try:
            text: Optional[str] = response.text
        except ValueError:
            # Raised by the SDK when the candidate carries no text parts.
            text = None
        return (text or "").strip()


def to_contents(messages: List[Dict[str, str]]) -> Tuple[str, List[dict]]:
    """Convert role/content messages into (system_instruction, Gemini contents)."""
    system_parts: List[str] = []
    contents: List[dict] = []
    for message in messages:
        role = message.get("role", "")
        text = message.get("content", "")
        if role == "system":
            if text:
                system_parts.append(text)
            continue
        contents.append(
            {
                "role": "model" if role == "assistant" else "user",
                "parts": [{"text": text}],
            }
        )
    return "\n\n".join(system_parts), contents


def _normalize_model_name(name: Optional[str]) -> str:
    """Purpose: Normalize model names by stripping prefix and whitespace.
    Inputs/Outputs: Input is a model name string; output is normalized name.
    Side Effects / State: None.
    Dependencies: None; used by GeminiClient.
    Failure Modes: Returns empty string for falsy input.
    If Removed: Model caching may key on names the SDK rejects.
    Testing Notes: Ensure "models/foo" becomes "foo" and whitespace is trimmed.
    """
    # Strip "models/" prefix and whitespace.
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned
