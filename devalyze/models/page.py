from mongoengine import (
    BooleanField,
    EmbeddedDocumentField,
    IntField,
    ListField,
    ReferenceField,
    StringField,
)

from devalyze.models.base import BaseDocument, BaseEmbeddedDocument, TimestampEvent
from devalyze.models.user import User
from devalyze.utils.base import PageTheme


USERNAME_PATTERN = r"^[a-z0-9_-]+$"


class PageLink(BaseEmbeddedDocument):
    """Embedded: one entry of a link-in-bio page.

    Fields:
    - title (str), url (str), icon (str, optional)
    - order (int): explicit display position
    """
    title = StringField(required=True, null=False, max_length=100)
    url = StringField(required=True, null=False, max_length=2048)
    icon = StringField(required=False, default="")
    order = IntField(required=True, null=False, default=0)


class Page(BaseDocument):
    """Link-in-bio page, at most one per user, publicly readable by username."""
    user = ReferenceField(document_type=User, required=True, null=False, unique=True)
    username = StringField(required=True, null=False, unique=True, min_length=3, max_length=30, regex=USERNAME_PATTERN)
    profile_name = StringField(required=False, default="", max_length=100)
    bio = StringField(required=False, default="", max_length=500)
    profile_image = StringField(required=False, default="")
    theme = StringField(required=True, null=False, default=PageTheme.LAKE_WHITE.value, choices=PageTheme.choices())
    links = ListField(EmbeddedDocumentField(PageLink), null=False, default=list)
    is_published = BooleanField(required=True, null=False, default=True)
    views = IntField(required=True, null=False, default=0, min_value=0)
    view_history = ListField(EmbeddedDocumentField(TimestampEvent), null=False, default=list)

    meta = {
        "collection": "pages",
        "indexes": [
            {"fields": ["username"], "unique": True},
            {"fields": ["user"], "unique": True},
        ],
    }

    def to_public(self) -> dict:
        return self.to_output(exclude=["user", "view_history", "metadata"])
