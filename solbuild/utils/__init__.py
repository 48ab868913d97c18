from .context_managers import change_cwd
from .enums import StrEnum
from .file_utils import is_relative_to
from .version import get_package_version
