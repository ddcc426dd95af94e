# Import every model so Base.metadata knows all tables
from secure_files.db.session import Base  # noqa: F401
from secure_files.models.file import FileRecord  # noqa: F401
from secure_files.models.user import User  # noqa: F401
