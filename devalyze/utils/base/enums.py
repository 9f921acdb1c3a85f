from enum import Enum


class BaseEnum(Enum):
    @classmethod
    def choices(cls):
        return [(item.value, item.name) for item in cls]

    @classmethod
    def values(cls):
        return [item.value for item in cls]


class PageTheme(BaseEnum):
    CUSTOM = "custom"
    LAKE_WHITE = "lakeWhite"
    LAKE_BLACK = "lakeBlack"
    AIR_SMOKE = "airSmoke"
    AIR_SNOW = "airSnow"
    AIR_GREY = "airGrey"


class SortField(BaseEnum):
    CREATED_AT = "createdAt"
    CLICKS = "clicks"
    LONG_URL = "longUrl"


class SortOrder(BaseEnum):
    ASC = "asc"
    DESC = "desc"
