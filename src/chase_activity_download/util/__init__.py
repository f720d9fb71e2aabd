
from .files import ensure_dir, save_download
from .prompt import wait_for_enter

__all__ = ["ensure_dir", "save_download", "wait_for_enter"]
