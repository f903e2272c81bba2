# catalog/services/edition_selector.py
from datetime import date
from typing import Optional, Sequence

from dateutil import parser as date_parser

from catalog.openlibrary import WorkRecord, EditionRecord


class EditionSelector:
    """Pick the edition that represents a work.

    The work's declared primary edition wins. Otherwise the most recently
    published candidate wins, comparing the parsed publish date, then
    December 31st of the publish year. Undated candidates sort below
    everything, and ties keep the earliest candidate.
    """

    def select(self, work: WorkRecord, candidates: Sequence[EditionRecord]) -> Optional[EditionRecord]:
        if not candidates:
            return None

        if work.primary_edition_source_id:
            for candidate in candidates:
                if candidate.source_id == work.primary_edition_source_id:
                    return candidate

        best = candidates[0]
        best_date = self.effective_date(best)
        for candidate in candidates[1:]:
            candidate_date = self.effective_date(candidate)
            if candidate_date > best_date:
                best, best_date = candidate, candidate_date
        return best

    @staticmethod
    def effective_date(edition: EditionRecord) -> date:
        if edition.publish_date:
            try:
                return date_parser.isoparse(edition.publish_date).date()
            except ValueError:
                pass
        if edition.publish_year:
            return date(edition.publish_year, 12, 31)
        return date.min
