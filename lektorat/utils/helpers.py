"""
Common utility functions and helpers.
"""
import re
import unicodedata


def truncate_text(text: str, max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def safe_filename(name: str, default: str = "document", extension: str = ".docx") -> str:
    """
    Build an ASCII-safe download filename.

    Args:
        name: Requested file name, with or without extension
        default: Used when nothing printable remains
        extension: Extension to enforce

    Returns:
        Sanitised file name ending in *extension*
    """
    # Strip accents so "Übersetzung" becomes "Ubersetzung"
    name = unicodedata.normalize("NFKD", name or "").encode("ascii", "ignore").decode("ascii")
    if name.lower().endswith(extension):
        name = name[: -len(extension)]
    name = re.sub(r"[^\w\-. ]", "", name).strip(" .")
    name = re.sub(r"\s+", "-", name)
    return f"{name or default}{extension}"
