from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor, as_completed
from threading import Lock

from tqdm import tqdm

from src.BFMyGCPPerms.errors import AggregationError, ConfigurationError, ProbeError
from src.BFMyGCPPerms.probe import probe_permissions


DEFAULT_THREADS = 3

ScanResult = namedtuple("ScanResult", ["held", "errors"])


class ScanError(namedtuple("ScanError", ["index", "batch", "error"])):
    """A batch whose probe failed, with the ProbeError that explains why."""
    __slots__ = ()

    @property
    def first(self):
        return self.batch[0] if self.batch else None

    @property
    def last(self):
        return self.batch[-1] if self.batch else None


class HeldPermissionSet:
    """
    Permissions found during a scan. Workers add to it concurrently, every
    add() is a single critical section. Once frozen it can only be read.
    """

    def __init__(self):
        self._lock = Lock()
        self._perms = set()
        self._frozen = None

    def add(self, perms):
        with self._lock:
            if self._frozen is not None:
                raise AggregationError("Cannot add permissions to a finished scan.")
            self._perms.update(perms)

    def freeze(self):
        with self._lock:
            if self._frozen is None:
                self._frozen = frozenset(self._perms)
            return self._frozen

    def __contains__(self, perm):
        with self._lock:
            return perm in self._perms

    def __len__(self):
        with self._lock:
            return len(self._perms)


class ConcurrentScanner:
    def __init__(self, client, concurrency_limit=DEFAULT_THREADS, probe=probe_permissions, on_batch=None, show_progress=False):
        if isinstance(concurrency_limit, bool) or not isinstance(concurrency_limit, int) or concurrency_limit < 1:
            raise ConfigurationError(f"Number of threads must be a positive integer, got {concurrency_limit!r}.")

        self.client = client
        self.concurrency_limit = concurrency_limit
        self.probe = probe
        self.on_batch = on_batch
        self.show_progress = show_progress

    def _process_batch(self, index, batch, target, held, errors, errors_lock):
        found = None
        error = None
        try:
            found = self.probe(batch, target, self.client)
        except ProbeError as e:
            error = e

        if error is None:
            held.add(found)
        else:
            with errors_lock:
                errors.append(ScanError(index, batch, error))

        if self.on_batch:
            self.on_batch(index, batch, found, error)

    def scan(self, batches, target):
        """
        Probe every batch against the target using at most
        `concurrency_limit` threads.

        A failing batch is recorded in the returned errors and never stops
        the other batches. The method returns once every batch has finished.

        Args:
            batches (iterable): Batches produced by chunk().
            target (ResourceTarget): Resource under test.

        Returns:
            ScanResult: frozenset of held permissions and the ScanErrors sorted by batch index.
        """
        batches = list(batches)
        held = HeldPermissionSet()
        errors = []
        errors_lock = Lock()

        if not batches:
            return ScanResult(held.freeze(), [])

        with ThreadPoolExecutor(max_workers=self.concurrency_limit) as executor:
            futures = {
                executor.submit(self._process_batch, index, batch, target, held, errors, errors_lock): index
                for index, batch in enumerate(batches)
            }
            for future in tqdm(as_completed(futures), total=len(futures), desc=f"Checking permissions for {target}",
                               leave=False, disable=not self.show_progress):
                # Only unexpected exceptions get here, ProbeErrors are already recorded
                future.result()

        return ScanResult(held.freeze(), sorted(errors, key=lambda e: e.index))


def scan(batches, target, client, concurrency_limit=DEFAULT_THREADS, on_batch=None, show_progress=False):
    scanner = ConcurrentScanner(client, concurrency_limit, on_batch=on_batch, show_progress=show_progress)
    return scanner.scan(batches, target)
