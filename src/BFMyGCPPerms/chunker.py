from src.BFMyGCPPerms.errors import ConfigurationError

# testIamPermissions rejects requests with more than 100 permissions
MAX_PERMISSIONS_PER_CALL = 100
DEFAULT_CHUNK_SIZE = 50


def prepare_catalog(permissions):
    """
    Turn the raw list gathered from a catalog source into the sorted, unique
    tuple that is chunked and scanned.
    """
    catalog = tuple(sorted({p.strip() for p in permissions if p and p.strip()}))
    if not catalog:
        raise ConfigurationError("The GCP permissions catalog is empty, nothing to check.")
    return catalog


def validate_chunk_size(size):
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        raise ConfigurationError(f"Chunk size must be a positive integer, got {size!r}.")
    if size > MAX_PERMISSIONS_PER_CALL:
        raise ConfigurationError(
            f"Chunk size {size} is above the {MAX_PERMISSIONS_PER_CALL} permissions allowed per testIamPermissions call."
        )
    return size


def chunk(catalog, size):
    """
    Split the catalog in contiguous batches of at most `size` permissions.

    Args:
        catalog (sequence): Ordered permission names.
        size (int): Maximum batch length, must be >= 1.

    Returns:
        list: Tuples that, concatenated in order, give back the catalog.
    """
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        raise ConfigurationError(f"Chunk size must be a positive integer, got {size!r}.")

    catalog = tuple(catalog)
    return [catalog[i:i + size] for i in range(0, len(catalog), size)]
