"""
Shared utility functions and singletons used across multiple modules.
"""

import uuid

from slowapi import Limiter
from slowapi.util import get_remote_address

# ── Shared rate-limiter instance ─────────────────────────────────────────
# Created here (not in main.py) so that route modules can import it
# without a circular dependency.
limiter = Limiter(key_func=get_remote_address)


def generate_job_id() -> str:
    """Generate a transcription job ID (e.g., 'job_1f0c9a7e2b4d')."""
    return f"job_{uuid.uuid4().hex[:12]}"


def generate_meeting_id() -> str:
    """Generate a meeting ID (canonical UUID4 string)."""
    return str(uuid.uuid4())
