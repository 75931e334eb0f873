"""Persisting votes and applying them to a user's rating record."""

from pinranks.logging import get_logger
from pinranks.models import FilterCategory, RatingRecord, VoteEvent, normalize_record
from pinranks.rating.elo import K_FACTOR
from pinranks.rating.rankings import apply_outcome, ranked_group_ids
from pinranks.rating.stores import Document, UserRatingStore, VoteLogStore

log = get_logger(__name__)


def _dump_record(record: RatingRecord) -> dict[str, dict[str, int]]:
    return {group_id: scores.model_dump() for group_id, scores in record.items()}


class RatingService:
    """Applies vote outcomes to per-user rating records.

    Ratings are stored one document per user, ``{"rankings": {groupId:
    {"all": int, <category>: int}}}``, and every update is a single
    read-modify-write transaction on that document.
    """

    def __init__(
        self,
        rating_store: UserRatingStore,
        vote_log: VoteLogStore,
        k_factor: float = K_FACTOR,
    ):
        self.rating_store = rating_store
        self.vote_log = vote_log
        self.k_factor = k_factor

    async def get_record(self, user_id: str) -> RatingRecord:
        document = await self.rating_store.get(user_id)
        return normalize_record((document or {}).get("rankings"))

    async def get_rankings(
        self,
        user_id: str,
        category: FilterCategory | None = None,
    ) -> list[tuple[str, int]]:
        """(group id, score) pairs for a user, highest first."""
        record = await self.get_record(user_id)
        return [(gid, record[gid].score(category)) for gid in ranked_group_ids(record, category)]

    async def record_vote(self, user_id: str, winner_group_id: str, loser_group_id: str) -> VoteEvent:
        event = VoteEvent(
            user_id=user_id,
            winner_group_id=winner_group_id,
            loser_group_id=loser_group_id,
        )
        await self.vote_log.append(event)
        log.debug("vote_recorded", user_id=user_id, winner=winner_group_id, loser=loser_group_id)
        return event

    async def apply_vote(
        self,
        user_id: str,
        winner_group_id: str,
        loser_group_id: str,
        winner_category: FilterCategory | None = None,
        loser_category: FilterCategory | None = None,
    ) -> RatingRecord:
        """Update the user's ratings for one outcome in a single transaction.

        Raises:
            RatingTransactionConflict: the store gave up after repeated conflicts
        """
        def update(current: Document | None) -> Document:
            document = dict(current or {})
            record = normalize_record(document.get("rankings"))
            record = apply_outcome(
                record,
                winner_group_id,
                loser_group_id,
                winner_category,
                loser_category,
                self.k_factor,
            )
            document["rankings"] = _dump_record(record)
            return document

        committed = await self.rating_store.read_modify_write(user_id, update)
        record = normalize_record(committed.get("rankings"))
        log.debug(
            "ratings_updated",
            user_id=user_id,
            winner=winner_group_id,
            winner_all=record[winner_group_id].all,
            loser=loser_group_id,
            loser_all=record[loser_group_id].all,
        )
        return record

    async def process_vote(
        self,
        user_id: str,
        winner_group_id: str,
        loser_group_id: str,
        winner_category: FilterCategory | None = None,
        loser_category: FilterCategory | None = None,
    ) -> RatingRecord:
        """Record the vote, then apply it.

        If applying fails the vote stays recorded; that partial outcome is
        accepted and not rolled back.
        """
        await self.record_vote(user_id, winner_group_id, loser_group_id)
        return await self.apply_vote(
            user_id, winner_group_id, loser_group_id, winner_category, loser_category
        )
