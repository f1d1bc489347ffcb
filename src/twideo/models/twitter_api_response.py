from typing import Any, NotRequired, TypedDict


class TwitterErrorDict(TypedDict):
    title: str
    detail: NotRequired[str]
    type: NotRequired[str]
    resource_id: NotRequired[str]


class TwitterAPIResponseDict(TypedDict):
    data: NotRequired[Any]
    includes: NotRequired[dict[str, Any]]
    meta: NotRequired[dict[str, Any]]
    errors: NotRequired[list[TwitterErrorDict]]
