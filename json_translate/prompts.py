"""
Prompt template for the translation task.

The generation endpoint takes a single free-form prompt, so the source and
target language labels and the literal text are all embedded in one string.
"""

PROMPT_TEMPLATE = "Translate the following {source_language} text to {target_language}: {text}"


def build_prompt(text: str, source_language: str, target_language: str) -> str:
    """
    Build the prompt sent to the model for one string leaf.

    Args:
        text:            the source string, sent verbatim
        source_language: e.g. "English"
        target_language: e.g. "Chinese", "French", "Japanese"

    Returns:
        A formatted prompt string.
    """
    return PROMPT_TEMPLATE.format(
        source_language=source_language,
        target_language=target_language,
        text=text,
    )
