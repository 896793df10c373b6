"""VoicingCache: memoises chord searches per copedent."""

import hashlib
import json
import logging
import threading
from typing import Any, Iterable

from steelchord.copedent_models import Copedent
from steelchord.voicing_enumerator import Voicing, find_chord_voicings

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str, tuple[int, ...], int, bool, bool]


def copedent_fingerprint(copedent: Copedent) -> str:
    """
    Hash of everything that affects a search: strings, controls, permissions
    and splits. The display name is left out.
    """
    data = copedent.to_dict()
    data.pop("name", None)
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


class VoicingCache:
    """
    Keyed store of :func:`find_chord_voicings` results.

    Keys combine the copedent id with a structural fingerprint, so a copedent
    edited in place under the same id never serves stale voicings. Entries
    live until :meth:`clear_chord_cache_for_copedent` or :meth:`clear_all`.

    Cached voicings are frozen dataclasses and are handed out by reference.

    Usage:

        cache = VoicingCache()
        voicings = cache.find_chord_voicings_with_cache(copedent, "E4", [0, 4, 7], 3)
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, list[Voicing]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _key(
        self,
        copedent: Copedent,
        root_note_with_octave: str,
        target_intervals: Iterable[int],
        results_per_fret: int,
        prune_redundant: bool,
        omit_unisons: bool,
    ) -> CacheKey:
        intervals = tuple(sorted({i % 12 for i in target_intervals}))
        # Root kept as spelled: parent scale names follow the caller's spelling
        return (
            copedent.id,
            copedent_fingerprint(copedent),
            root_note_with_octave.strip(),
            intervals,
            results_per_fret,
            prune_redundant,
            omit_unisons,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def find_chord_voicings_with_cache(
        self,
        copedent: Copedent,
        root_note_with_octave: str,
        target_intervals: Iterable[int],
        results_per_fret: int,
        use_full_copedent: bool = True,
        *,
        prune_redundant: bool = False,
        omit_unisons: bool = False,
    ) -> list[Voicing]:
        """Cached :func:`find_chord_voicings`; same arguments, same errors."""
        intervals = list(target_intervals)
        key = self._key(
            copedent, root_note_with_octave, intervals, results_per_fret,
            prune_redundant, omit_unisons,
        )
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self.hits += 1
                logger.debug("Cache hit for %s %s on %s", key[2], list(key[3]), copedent.id)
                return list(cached)
            self.misses += 1

        logger.debug("Cache miss for %s %s on %s", key[2], list(key[3]), copedent.id)
        voicings = find_chord_voicings(
            copedent,
            root_note_with_octave,
            intervals,
            results_per_fret,
            use_full_copedent,
            prune_redundant=prune_redundant,
            omit_unisons=omit_unisons,
        )
        with self._lock:
            self._entries[key] = voicings
        return list(voicings)

    def clear_chord_cache_for_copedent(self, copedent_id: str) -> int:
        """Drop every entry for *copedent_id*; returns the number removed."""
        with self._lock:
            stale = [key for key in self._entries if key[0] == copedent_id]
            for key in stale:
                del self._entries[key]
        logger.debug("Cleared %d cached searches for %s", len(stale), copedent_id)
        return len(stale)

    def clear_all(self) -> int:
        with self._lock:
            cleared = len(self._entries)
            self._entries.clear()
        return cleared

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            total = self.hits + self.misses
            return {
                "hits": self.hits,
                "misses": self.misses,
                "total_requests": total,
                "hit_rate": self.hits / total if total else 0.0,
                "entries": len(self._entries),
            }

    def __len__(self) -> int:
        return len(self._entries)
