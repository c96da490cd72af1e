"""Import command modules for their registration side-effects."""

# Re-exporting modules isn't required; importing ensures registration happens.
from . import env as _env  # noqa: F401
from . import file_ops as _file_ops  # noqa: F401
from . import jobs as _jobs  # noqa: F401
from . import meta as _meta  # noqa: F401
from . import navigation as _navigation  # noqa: F401
from . import scripting as _scripting  # noqa: F401
from . import text as _text  # noqa: F401
from . import users as _users  # noqa: F401

__all__ = []
