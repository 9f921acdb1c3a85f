from mongoengine import EmbeddedDocumentField, IntField, ListField, ReferenceField, StringField

from devalyze.models.base import BaseDocument, TimestampEvent
from devalyze.models.user import User


class ShortLink(BaseDocument):
    """Short code -> destination mapping.

    Fields:
    - long_url (str): destination, absolute http(s), at most 2048 chars
    - short_code (str, unique): generated code or custom alias
    - owner (Ref[User])
    - clicks (int) / click_history (list[TimestampEvent]): always updated together
    """
    long_url = StringField(required=True, null=False, max_length=2048)
    short_code = StringField(required=True, null=False, unique=True)
    owner = ReferenceField(document_type=User, required=True, null=False)
    clicks = IntField(required=True, null=False, default=0, min_value=0)
    click_history = ListField(EmbeddedDocumentField(TimestampEvent), null=False, default=list)

    meta = {
        "collection": "short_links",
        "indexes": [
            {"fields": ["short_code"], "unique": True},
            {"fields": ["owner", "-created_at"]},
        ],
    }
