from mongoengine import EmbeddedDocumentField, IntField, ListField, ReferenceField, StringField

from devalyze.models.base import BaseDocument, TimestampEvent
from devalyze.models.user import User


class QRCode(BaseDocument):
    """A rendered QR code pointing at the scan-tracking redirect for `long_url`."""
    long_url = StringField(required=True, null=False, max_length=2048)
    owner = ReferenceField(document_type=User, required=True, null=False)
    qr_code_url = StringField(required=True, null=False)
    scans = IntField(required=True, null=False, default=0, min_value=0)
    scan_history = ListField(EmbeddedDocumentField(TimestampEvent), null=False, default=list)

    meta = {
        "collection": "qr_codes",
        "indexes": [
            {"fields": ["owner", "-created_at"]},
        ],
    }
