"""Collaborators the import pipeline talks to: blob storage and async invocation."""

from importflow.integrations.blob_store import BlobStore, LocalBlobStore
from importflow.integrations.invoker import AsyncInvoker, InlineInvoker, ThreadPoolInvoker

__all__ = ["BlobStore", "LocalBlobStore", "AsyncInvoker", "InlineInvoker", "ThreadPoolInvoker"]
