import os
import markdown
from flask import current_app


# ==========================================================
# 📂 FILENAMES
# ==========================================================
def sanitize_filename(name) -> str:
    """Strip any directory components from a user supplied filename."""
    if not name:
        return ""
    return os.path.basename(name.replace("\\", "/"))


def file_extension(name: str) -> str:
    """Dot-prefixed extension as it appears in the name (case preserved)."""
    return os.path.splitext(name)[1]


# ==========================================================
# 📝 MARKDOWN
# ==========================================================
def render_markdown(text: str) -> str:
    return markdown.markdown(text)


# ==========================================================
# 🧾 AUDIT LOGGING
# ==========================================================
def audit(username, action: str, detail: str = ""):
    """Log user actions (creates, edits, deletes, uploads, sign-ins)."""
    current_app.logger.info("audit user=%s action=%s detail=%s", username or "-", action, detail)
