"""
Multi-Topic Distribution Planner.

Precomputes the full question sequence of a multi-topic session:

1. Split the total evenly across selections (remainder to the first ones)
2. Split each selection's quota across tiers by the focus area's mix:
   - strengthen: 60% easy / 30% medium / 10% hard
   - balanced:   33% / 34% / 33% (equal split)
   - improve:    10% easy / 30% medium / 60% hard
3. Sample 3x the needed count per tier from the pool (random order)
4. Deduplicate across all selections by id and normalized text
5. Record shortfalls, backfill from other tiers, then other selections
6. Fisher-Yates shuffle so topics interleave

Shortfalls never fail the plan; they are returned for content-team
remediation. Only an empty selection list or a scope without any
questions at all stops a session from starting.
"""

from __future__ import annotations

import random
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field

from loguru import logger

from src.assessment.errors import InvalidConfigurationError, ScopeEmptyError
from src.assessment.models import (
    DistributionPlan,
    FocusArea,
    PlanEntry,
    QuestionMeta,
    ShortfallRecord,
    Tier,
    TopicSelection,
)
from src.assessment.providers import QuestionPoolProvider


def split_evenly(total: int, parts: int) -> list[int]:
    """floor(total/parts) each, one extra for the first ``total % parts`` parts."""
    if parts <= 0:
        return []
    base, remainder = divmod(total, parts)
    return [base + (1 if i < remainder else 0) for i in range(parts)]


@dataclass(frozen=True)
class DifficultyMix:
    """
    Per-tier share of a quota.

    Shares are integer parts so allocation is exact integer arithmetic.
    The dominant tier is rounded up; the next tiers (by share) are rounded
    half-up within what is left; the last tier absorbs the remainder.
    """

    parts: dict[Tier, int]
    dominant: Tier

    @property
    def percentages(self) -> dict[Tier, float]:
        total = sum(self.parts.values())
        return {tier: 100 * self.parts[tier] / total for tier in Tier.ordered()}

    def preference_order(self) -> list[Tier]:
        """Dominant tier first, then by share (ties keep easy-to-hard order)."""
        others = [t for t in Tier.ordered() if t != self.dominant]
        others.sort(key=lambda t: -self.parts[t])
        return [self.dominant, *others]

    def allocate(self, quota: int) -> dict[Tier, int]:
        total_parts = sum(self.parts.values())
        counts = {tier: 0 for tier in Tier.ordered()}
        if quota <= 0:
            return counts

        order = self.preference_order()
        remaining = quota

        dominant_share = -(-quota * self.parts[self.dominant] // total_parts)
        counts[self.dominant] = min(dominant_share, remaining)
        remaining -= counts[self.dominant]

        for position, tier in enumerate(order[1:], start=1):
            if position == len(order) - 1:
                counts[tier] = remaining
                break
            share = (2 * quota * self.parts[tier] + total_parts) // (2 * total_parts)
            counts[tier] = min(share, remaining)
            remaining -= counts[tier]

        return counts


DIFFICULTY_MIXES: dict[FocusArea, DifficultyMix] = {
    FocusArea.STRENGTHEN: DifficultyMix(
        parts={Tier.EASY: 6, Tier.MEDIUM: 3, Tier.HARD: 1},
        dominant=Tier.EASY,
    ),
    FocusArea.BALANCED: DifficultyMix(
        parts={Tier.EASY: 1, Tier.MEDIUM: 1, Tier.HARD: 1},
        dominant=Tier.MEDIUM,
    ),
    FocusArea.IMPROVE: DifficultyMix(
        parts={Tier.EASY: 1, Tier.MEDIUM: 3, Tier.HARD: 6},
        dominant=Tier.HARD,
    ),
}


@dataclass
class _SelectionBucket:
    """Working state for one selection while the plan is assembled."""

    index: int
    selection: TopicSelection
    quota: int
    targets: dict[Tier, int]
    picked: list[PlanEntry] = field(default_factory=list)
    spare: dict[Tier, list[QuestionMeta]] = field(
        default_factory=lambda: {tier: [] for tier in Tier.ordered()}
    )

    @property
    def missing(self) -> int:
        return max(self.quota - len(self.picked), 0)

    def spare_ids(self) -> set[int]:
        return {q.id for questions in self.spare.values() for q in questions}


class _Deduplicator:
    """
    Global uniqueness by id and normalized question text.

    Questions turned down as duplicates are remembered in ``rejected_ids``
    so later samples skip them.
    """

    def __init__(self) -> None:
        self.ids: set[int] = set()
        self.texts: set[str] = set()
        self.rejected_ids: set[int] = set()

    def excluded_ids(self) -> set[int]:
        return self.ids | self.rejected_ids

    def reject(self, question: QuestionMeta) -> None:
        if question.id not in self.ids:
            self.rejected_ids.add(question.id)

    def is_new(self, question: QuestionMeta) -> bool:
        if question.id in self.ids:
            return False
        text = question.normalized_text
        return not (text and text in self.texts)

    def accept(self, question: QuestionMeta) -> bool:
        if not self.is_new(question):
            self.reject(question)
            return False
        self.ids.add(question.id)
        if question.normalized_text:
            self.texts.add(question.normalized_text)
        return True


class DistributionPlanner:
    """Builds DistributionPlans for multi-topic sessions."""

    def __init__(
        self,
        provider: QuestionPoolProvider,
        oversample_factor: int = 3,
        rng: random.Random | None = None,
    ):
        self.provider = provider
        self.oversample_factor = max(1, oversample_factor)
        self.rng = rng or random.Random()

    def plan(
        self,
        selections: Sequence[TopicSelection],
        total: int,
        focus_area: FocusArea | str,
    ) -> DistributionPlan:
        """
        Precompute a multi-topic question sequence.

        Args:
            selections: Topic selections (order decides who gets remainder slots)
            total: Requested number of questions
            focus_area: Difficulty mix policy

        Returns:
            DistributionPlan with min(total, achievable) unique entries

        Raises:
            InvalidConfigurationError: empty selection list, total < 1, bad focus area
            ScopeEmptyError: no question exists for any selection
        """
        focus = FocusArea.parse(focus_area)
        selections = list(selections)
        if not selections:
            raise InvalidConfigurationError("At least one topic must be selected")
        if total < 1:
            raise InvalidConfigurationError(f"Question count must be positive, got {total}")

        mix = DIFFICULTY_MIXES[focus]
        sub_quotas = split_evenly(total, len(selections))
        dedup = _Deduplicator()
        shortfalls: list[ShortfallRecord] = []
        buckets: list[_SelectionBucket] = []

        for index, (selection, quota) in enumerate(zip(selections, sub_quotas)):
            bucket = _SelectionBucket(
                index=index,
                selection=selection,
                quota=quota,
                targets=mix.allocate(quota),
            )
            self._fill_targets(bucket, mix, dedup, shortfalls)
            if bucket.missing:
                self._backfill(bucket, mix, dedup, bucket.missing)
            buckets.append(bucket)

        deficit = total - sum(len(b.picked) for b in buckets)
        if deficit > 0:
            for donor in buckets:
                if deficit <= 0:
                    break
                taken = self._backfill(donor, mix, dedup, deficit, beyond_quota=True)
                deficit -= taken

        entries = [entry for bucket in buckets for entry in bucket.picked]
        if not entries:
            scope = "; ".join(s.label for s in selections)
            raise ScopeEmptyError(scope)

        # random.shuffle is an in-place Fisher-Yates shuffle
        self.rng.shuffle(entries)

        plan = DistributionPlan(
            entries=entries,
            requested_total=total,
            shortfalls=shortfalls,
            sub_quotas=sub_quotas,
            tier_targets=[b.targets for b in buckets],
        )

        if plan.is_complete:
            logger.info(
                f"Planned {len(plan)} questions across {len(selections)} topics ({focus.value})"
            )
        else:
            logger.warning(
                f"Planned {len(plan)}/{total} questions across {len(selections)} topics; "
                f"{len(shortfalls)} shortfall(s) recorded"
            )
        return plan

    # ========================================
    # Internals
    # ========================================

    def _sample(
        self,
        selection: TopicSelection,
        tier: Tier,
        count: int,
        exclude_ids: Collection[int],
    ) -> list[QuestionMeta]:
        if count <= 0:
            return []
        return self.provider.sample_questions(
            selection,
            tier,
            limit=count * self.oversample_factor,
            exclude_ids=exclude_ids,
        )

    def _take(
        self,
        bucket: _SelectionBucket,
        tier: Tier,
        wanted: int,
        dedup: _Deduplicator,
    ) -> int:
        """
        Sample ``tier`` questions for ``bucket`` until ``wanted`` are accepted
        or the selection runs dry. Extra unique questions become spares.
        Returns the number accepted.
        """
        accepted = 0
        while accepted < wanted:
            exclude = dedup.excluded_ids() | bucket.spare_ids()
            fetched = self._sample(bucket.selection, tier, wanted - accepted, exclude)
            if not fetched:
                break
            for question in fetched:
                if accepted < wanted and dedup.accept(question):
                    bucket.picked.append(PlanEntry(question, bucket.index, tier))
                    accepted += 1
                elif dedup.is_new(question):
                    bucket.spare[tier].append(question)
                else:
                    dedup.reject(question)
        return accepted

    def _fill_targets(
        self,
        bucket: _SelectionBucket,
        mix: DifficultyMix,
        dedup: _Deduplicator,
        shortfalls: list[ShortfallRecord],
    ) -> None:
        for tier in mix.preference_order():
            wanted = bucket.targets[tier]
            if wanted <= 0:
                continue

            accepted = self._take(bucket, tier, wanted, dedup)
            if accepted < wanted:
                record = ShortfallRecord(
                    subject=bucket.selection.subject,
                    topic=bucket.selection.topic,
                    subtopic=bucket.selection.subtopic_label,
                    difficulty=tier,
                    requested=wanted,
                    available=accepted,
                )
                shortfalls.append(record)
                logger.warning(
                    f"Shortfall in {bucket.selection.label} [{tier.value}]: "
                    f"requested {wanted}, available {accepted}"
                )

    def _backfill(
        self,
        bucket: _SelectionBucket,
        mix: DifficultyMix,
        dedup: _Deduplicator,
        needed: int,
        beyond_quota: bool = False,
    ) -> int:
        """
        Add up to ``needed`` extra questions drawn from ``bucket``'s selection.

        Spare (already sampled) questions are used first, then fresh samples
        excluding everything seen or rejected so far. Returns the number added.
        """
        added = 0
        for tier in mix.preference_order():
            if added >= needed:
                break

            for question in bucket.spare[tier]:
                if added >= needed:
                    break
                if dedup.accept(question):
                    bucket.picked.append(PlanEntry(question, bucket.index, tier))
                    added += 1
            kept = []
            for question in bucket.spare[tier]:
                if dedup.is_new(question):
                    kept.append(question)
                else:
                    dedup.reject(question)
            bucket.spare[tier] = kept

            if added < needed:
                added += self._take(bucket, tier, needed - added, dedup)

        if added and beyond_quota:
            logger.debug(f"Backfilled {added} question(s) from {bucket.selection.label}")
        return added
