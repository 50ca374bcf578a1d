"""Central ORM module: imports all models so Base.metadata knows every table."""

from api.files.orm.file_model import FileModel
from api.pastes.orm.paste_model import PasteModel

__all__ = [
    "FileModel",
    "PasteModel",
]
