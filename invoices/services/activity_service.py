"""
Activity Service - append-only audit trail for recurring invoices.

Recording is best effort: a failed write is logged and never reaches the
caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from django.db import transaction

if TYPE_CHECKING:
    from invoices.models import Activity

logger = logging.getLogger(__name__)


class ActivityService:

    @staticmethod
    def record(
        user_id: int,
        activity_type: str,
        text: str,
        invoice_id: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional["Activity"]:
        from invoices.models import Activity

        try:
            with transaction.atomic():
                return Activity.objects.create(
                    user_id=user_id,
                    activity_type=activity_type,
                    text=text,
                    invoice_id=invoice_id,
                    metadata=metadata or {},
                )
        except Exception:
            logger.exception(f"Failed to record {activity_type} activity for user {user_id}")
            return None

    @staticmethod
    def for_invoice(invoice_id: Any) -> List["Activity"]:
        from invoices.models import Activity
        return list(Activity.objects.filter(invoice_id=invoice_id).order_by("-created_at"))
