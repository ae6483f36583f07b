# Import individual CRUD modules so they can be accessed via the package
from . import crud_profile # noqa
from . import crud_room # noqa
from . import crud_tour # noqa
from . import crud_booking # noqa

__all__ = [
    "crud_profile",
    "crud_room",
    "crud_tour",
    "crud_booking",
]
