from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Optional

_request_id: ContextVar[str] = ContextVar("_request_id", default="-")

# Inbound ids are echoed back in headers and logs; keep them short and plain
_SAFE_RID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

def new_request_id(inbound: Optional[str] = None) -> str:
    rid = inbound if inbound and _SAFE_RID.match(inbound) else uuid.uuid4().hex[:12]
    _request_id.set(rid)
    return rid

def get_request_id() -> str:
    return _request_id.get()
