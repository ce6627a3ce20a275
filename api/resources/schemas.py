"""
Pydantic schemas for resource endpoints.

Document bodies have no schema; only the identifier envelope does.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel


class IdentifierResponse(BaseModel):
    identifier: uuid.UUID
