"""One-way ConfigMap synchronisation between namespaces: resource types and a reconciler."""

__version__ = "0.1.0"
__all__ = ["controller", "types"]