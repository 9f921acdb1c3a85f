from devalyze.utils.base.dates import as_utc, utcnow
from devalyze.utils.base.enums import BaseEnum, PageTheme, SortField, SortOrder
