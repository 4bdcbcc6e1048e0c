"""Random playlist sampling."""

import logging
import random
from typing import List, Optional

from ...config import DEFAULT_PLAYLIST_SIZE
from ...models import LibraryCatalog, Playlist

logger = logging.getLogger(__name__)


class PlaylistSampler:
    """Draws playlists uniformly at random from a catalog.

    Every call uses a fresh random source unless one is injected, so repeated
    playlists within a session differ while tests can pass a seeded
    ``random.Random``.
    """

    def __init__(self, max_size: int = DEFAULT_PLAYLIST_SIZE) -> None:
        """Initialize playlist sampler.

        Args:
            max_size: Playlist length used when no count is requested
        """
        if max_size < 1:
            raise ValueError(f"Playlist size must be positive, got {max_size}")
        self.max_size = max_size

    def sample(
        self,
        catalog: LibraryCatalog,
        count: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> Playlist:
        """Pick ``min(count, len(catalog))`` distinct tracks.

        Args:
            catalog: Catalog to draw from
            count: Requested playlist length (defaults to ``max_size``)
            rng: Random source; a new unseeded one is used when omitted

        Returns:
            Playlist in random order; empty for an empty catalog

        Raises:
            ValueError: If count is not positive
        """
        count = self.max_size if count is None else count
        if count < 1:
            raise ValueError(f"Playlist size must be positive, got {count}")

        indices = self.sample_indices(len(catalog), count, rng or random.Random())
        logger.debug("Sampled %d of %d tracks", len(indices), len(catalog))
        return Playlist(indices=indices, tracks=[catalog[i] for i in indices])

    @staticmethod
    def sample_indices(population: int, count: int, rng: random.Random) -> List[int]:
        """Partial Fisher-Yates shuffle of ``range(population)``.

        Only the first ``k`` positions are shuffled, so the cost is O(k) swaps
        on top of building the index list.
        """
        k = min(count, population)
        pool = list(range(population))
        for i in range(k):
            j = rng.randrange(i, population)
            pool[i], pool[j] = pool[j], pool[i]
        return pool[:k]
