from typing import Iterator, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from secure_files.core.config import Settings
from secure_files.core.errors import AuthError
from secure_files.core.security import TokenService
from secure_files.services.access import DeletionHandler, DownloadResolver
from secure_files.services.registry import FileRegistry
from secure_files.services.storage import UploadStore
from secure_files.services.uploads import UploadHandler
from secure_files.services.users import UserDirectory

# Reads "Authorization: Bearer <token>"; missing header yields None
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/login", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Iterator[Session]:
    """One database session per request"""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.store


def get_user_directory(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> UserDirectory:
    return UserDirectory(db, settings, tokens)


def get_file_registry(db: Session = Depends(get_db)) -> FileRegistry:
    return FileRegistry(db)


def get_upload_handler(
    settings: Settings = Depends(get_settings),
    registry: FileRegistry = Depends(get_file_registry),
    store: UploadStore = Depends(get_upload_store),
) -> UploadHandler:
    return UploadHandler(settings, registry, store)


def get_download_resolver(
    registry: FileRegistry = Depends(get_file_registry),
    store: UploadStore = Depends(get_upload_store),
    tokens: TokenService = Depends(get_token_service),
) -> DownloadResolver:
    return DownloadResolver(registry, store, tokens)


def get_deletion_handler(
    registry: FileRegistry = Depends(get_file_registry),
    store: UploadStore = Depends(get_upload_store),
) -> DeletionHandler:
    return DeletionHandler(registry, store)


def get_current_user_id(
    token: Optional[str] = Depends(oauth2_scheme),
    tokens: TokenService = Depends(get_token_service),
    users: UserDirectory = Depends(get_user_directory),
) -> int:
    """Guard for routes that need an identity.

    The token must be valid and its subject must still be a known account.
    """
    if not token:
        raise AuthError("Missing bearer token")
    user_id = tokens.verify(token)
    if users.get(user_id) is None:
        raise AuthError("Unknown user")
    return user_id
