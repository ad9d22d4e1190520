from __future__ import annotations

import logging

from settings import Settings

from .interfaces import KeyedStore
from .local_store import LocalKeyedStore
from .paths import data_dir, local_store_path

logger = logging.getLogger(__name__)

BACKENDS = ("local", "firestore")


def build_local_store(settings: Settings) -> LocalKeyedStore:
    path = local_store_path(data_dir(), settings.local_namespace) if settings.persist_to_disk else None
    return LocalKeyedStore(path, namespace=settings.local_namespace)


def build_firestore_client(settings: Settings):
    import firebase_admin
    from firebase_admin import firestore

    try:
        app = firebase_admin.get_app()
    except ValueError:
        options = {"projectId": settings.firestore_project_id} if settings.firestore_project_id else None
        app = firebase_admin.initialize_app(options=options)
    return firestore.client(app)


def build_store(settings: Settings) -> KeyedStore:
    """
    Construct the store selected by STORAGE_BACKEND.

    The returned instance is owned by the caller, which passes it to every
    consumer and closes it on shutdown.
    """
    backend = settings.storage_backend
    if backend not in BACKENDS:
        raise ValueError(f"unknown storage backend {backend!r}; expected one of {BACKENDS}")

    local = build_local_store(settings)
    if backend == "local":
        logger.info("STORE: local backend (path=%s)", local.path or "<memory>")
        return local

    from .firestore_store import FirestoreKeyedStore

    logger.info("STORE: firestore backend (project=%s)", settings.firestore_project_id or "<default>")
    return FirestoreKeyedStore(
        build_firestore_client(settings),
        local=local,
        degrade_list_failures=settings.degrade_list_failures,
    )
