from __future__ import annotations

from pathlib import Path

DEFAULT_SYSTEM_PROMPT = (
    "You are a friendly L'Oréal product advisor. When asked to generate a routine, "
    "produce a clear step-by-step routine with a short rationale for each step and usage "
    "notes. When answering follow-up questions, use the provided routine and product "
    "context. Keep answers concise and professional."
)

SYSTEM_PROMPT_FILE = "system_prompt.txt"


def load_prompt(prompt_path: Path) -> str:
    """Purpose: Load a prompt file as UTF-8 text and strip BOM if present.
    Inputs/Outputs: Input is a Path to the prompt file; output is the decoded string.
    Side Effects / State: None; pure function reading the filesystem.
    Dependencies: Uses Path.read_text/read_bytes; used by load_system_prompt.
    Failure Modes: UnicodeDecodeError triggers a fallback decode with errors ignored,
        which can drop invalid bytes.
    If Removed: Operators cannot change the advisor instruction without a code edit.
    Testing Notes: Validate BOM-stripping and fallback decoding on non-UTF8 files.
    """
    # Read as UTF-8 and fall back to a tolerant decode if needed.
    try:
        return prompt_path.read_text(encoding="utf-8").lstrip("\ufeff")
    except UnicodeDecodeError:
        raw = prompt_path.read_bytes()
        text = raw.decode("utf-8", errors="ignore")
        return text.lstrip("\ufeff")


def load_system_prompt(prompts_dir: Path) -> str:
    """Return the advisor instruction from prompts_dir, or the built-in default."""
    path = prompts_dir / SYSTEM_PROMPT_FILE
    if not path.exists():
        return DEFAULT_SYSTEM_PROMPT
    text = load_prompt(path).strip()
    return text or DEFAULT_SYSTEM_PROMPT
