"""Ideation stage: stream a batch of ideas out of the producer.

Identifiers are generated before the producer is called and embedded in the
prompt.  The streamed response is fed fragment by fragment into an
:class:`~idea_forge.services.extraction.IncrementalExtractor`; each idea is
announced as soon as its object closes.  Rejected candidates and a trailing
object cut off by the end of the stream are repaired by the recovery engine
and kept as degraded ideas when at least one idea field survives; anything
else (a trailing ``"meta"`` object, say) is discarded and counted in the
completion event's ``droppedCount``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from idea_forge.domain.entities import DEFAULT_REASONING, Idea, IdeaReasoning, StageOutput
from idea_forge.domain.enums import BusinessModel, EventType, IdeaStage, StageName
from idea_forge.domain.events import StageEvent, StageMessage, StageResult
from idea_forge.domain.identifiers import is_ulid, new_ulid
from idea_forge.infrastructure.cache import IDEATION_CACHE_KEY
from idea_forge.infrastructure.llm import LLMError
from idea_forge.services.extraction import (
    Candidate,
    IncrementalExtractor,
    extract_objects,
    model_validator,
)
from idea_forge.services.recovery import FieldKind, JSONRecoveryEngine
from idea_forge.services.stages import Stage, StageContext

logger = logging.getLogger(__name__)

UNTITLED = "Untitled idea"
UNPARSED_DESCRIPTION = "Description unavailable: the generated idea could not be parsed."
NEUTRAL_SCORE = 5

# Stands in for a missing or malformed id until a pre-assigned one is claimed.
UNASSIGNED_ID = "0" * 26

_SCORE_FIELDS = (
    "disruptionPotential",
    "marketPotential",
    "technicalComplexity",
    "capitalIntensity",
)
_REASONING_FIELDS = ("disruption", "market", "technical", "capital")

IDEA_RECOVERY = JSONRecoveryEngine(
    fields={
        "title": FieldKind.STRING,
        "description": FieldKind.STRING,
        "businessModel": FieldKind.STRING,
        **{name: FieldKind.NUMBER for name in _SCORE_FIELDS},
    },
    default={
        "title": UNTITLED,
        "description": UNPARSED_DESCRIPTION,
        "businessModel": "",
        **{name: NEUTRAL_SCORE for name in _SCORE_FIELDS},
    },
    name="ideation",
)

IDEATION_SYSTEM_PROMPT = """\
You are an elite business strategist. Generate exactly {count} innovative business ideas.

Output ONLY a JSON object with a single key "ideas" holding an array of {count} objects.
Use these EXACT ids, in order, one per idea:
{ids}

Each idea object must contain:
  "id": the corresponding id from the list above,
  "title": a memorable name,
  "description": problem, approach and why it matters (2-3 sentences),
  "businessModel": exactly one of B2B, B2C, B2B2C, Marketplace, SaaS, DTC,
  "disruptionPotential", "marketPotential", "technicalComplexity", "capitalIntensity":
      integers from 1 to 10,
  "reasoning": {{"disruption": ..., "market": ..., "technical": ..., "capital": ...}}
      with one sentence of justification per score.

Be rigorous: most scores should fall between 4 and 7.
{mode_context}
"""

REFINEMENT_SYSTEM_PROMPT = """\
You are a venture analyst. Critically improve the business ideas you are given:
sharpen titles and descriptions, make scores realistic and strengthen reasoning.
Keep every "id" exactly as given. Output ONLY a JSON object {"ideas": [...]} using
the same fields as the input.
"""


def idea_validator(raw: Any) -> Idea:
    """Validate a streamed idea object, tolerating a missing or foreign id."""
    if isinstance(raw, Mapping) and not is_ulid(raw.get("id")):
        raw = {**raw, "id": UNASSIGNED_ID}
    return Idea.model_validate(raw)


def business_model_from_preference(text: str) -> BusinessModel:
    """Best matching tag for free-text preferences such as ``"B2B SaaS"``."""
    lowered = text.lower()
    order = (
        BusinessModel.B2B2C,
        BusinessModel.MARKETPLACE,
        BusinessModel.B2B,
        BusinessModel.B2C,
        BusinessModel.SAAS,
        BusinessModel.DTC,
    )
    return next((m for m in order if m.value.lower() in lowered), BusinessModel.B2B)


def _score(value: Any) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return NEUTRAL_SCORE
    return score if 1 <= score <= 10 else NEUTRAL_SCORE


def _text(value: Any, default: str) -> str:
    return value.strip() if isinstance(value, str) and value.strip() else default


def coerce_idea(
    data: Mapping[str, Any],
    idea_id: str,
    fallback_model: BusinessModel,
    execution_mode: str | None = None,
) -> Idea:
    """Build a valid Idea from a partial record, field by field.

    Missing or out-of-range values get neutral defaults; missing reasoning
    gets :data:`~idea_forge.domain.entities.DEFAULT_REASONING`.
    """
    raw_reasoning = data.get("reasoning")
    reasons = raw_reasoning if isinstance(raw_reasoning, Mapping) else {}
    try:
        business_model = BusinessModel(data.get("businessModel"))
    except ValueError:
        business_model = fallback_model
    return Idea(
        id=idea_id,
        title=_text(data.get("title"), UNTITLED),
        description=_text(data.get("description"), UNPARSED_DESCRIPTION),
        business_model=business_model,
        disruption_potential=_score(data.get("disruptionPotential")),
        market_potential=_score(data.get("marketPotential")),
        technical_complexity=_score(data.get("technicalComplexity")),
        capital_intensity=_score(data.get("capitalIntensity")),
        reasoning=IdeaReasoning(
            **{f: _text(reasons.get(f), DEFAULT_REASONING) for f in _REASONING_FIELDS}
        ),
        execution_mode=execution_mode,
    )


class IdAssigner:
    """Hands out the pre-assigned identifiers, each at most once."""

    def __init__(self, ids: Sequence[str]) -> None:
        self.ids = list(ids)
        self._used: set[str] = set()

    @property
    def exhausted(self) -> bool:
        return len(self._used) >= len(self.ids)

    def claim(self, proposed: str | None) -> str:
        if proposed in self.ids and proposed not in self._used:
            self._used.add(proposed)
            return proposed
        for idea_id in self.ids:
            if idea_id not in self._used:
                if proposed and proposed != UNASSIGNED_ID:
                    logger.warning("Replacing unexpected idea id %s with %s", proposed, idea_id)
                self._used.add(idea_id)
                return idea_id
        raise LookupError("All pre-assigned idea ids are in use")


class IdeationStage(Stage):
    """Generates the initial batch of ideas from user preferences."""

    name = StageName.IDEATION
    label = "ideation"
    cache_key = IDEATION_CACHE_KEY
    persist_as = IdeaStage.IDEATION
    consumes_ideas = False

    def build_prompts(self, ids: Sequence[str], context: StageContext) -> tuple[str, str]:
        system = IDEATION_SYSTEM_PROMPT.format(
            count=len(ids),
            ids="\n".join(f"  {i}. {idea_id}" for i, idea_id in enumerate(ids, start=1)),
            mode_context=context.mode.ideation_context(context.preferences),
        )
        user = (
            f"Generate {len(ids)} business ideas for: {context.preferences.describe()}"
        )
        return system, user

    def start_message(self, total: int, context: StageContext) -> str:
        return f"🚀 Generating {total} business ideas ({context.mode.profile.display_name})"

    def progress_message(self, index: int, total: int, idea: Idea) -> str:
        return f"💡 Idea {index + 1}/{total}: {idea.title}"

    def _from_candidate(
        self, candidate: Candidate[Idea], assigner: IdAssigner, context: StageContext
    ) -> Idea | None:
        if candidate.accepted and candidate.value is not None:
            idea = candidate.value
            return idea.model_copy(
                update={"id": assigner.claim(idea.id), "execution_mode": context.mode.mode}
            )
        return self._recover(candidate.text, assigner, context)

    def _recover(self, text: str, assigner: IdAssigner, context: StageContext) -> Idea | None:
        """Repair *text* into a degraded idea, or ``None`` if it holds no idea fields."""
        result = IDEA_RECOVERY.recover(text)
        if not set(result.recovered) & set(IDEA_RECOVERY.fields):
            logger.warning(
                "Discarding candidate without idea fields (recovery reached %s)",
                result.step.value,
            )
            return None
        proposed = result.recovered.get("id")
        idea = coerce_idea(
            result.record,
            assigner.claim(proposed if isinstance(proposed, str) else None),
            business_model_from_preference(context.preferences.business_model),
            context.mode.mode,
        )
        logger.warning(
            "Kept degraded idea %s (recovered via %s)", idea.id, result.step.value
        )
        return idea

    async def execute(
        self, ideas: Sequence[Idea], context: StageContext
    ) -> AsyncIterator[StageMessage]:
        total = context.config.batch_size
        ids = [new_ulid() for _ in range(total)]
        assigner = IdAssigner(ids)
        yield self.start_event(total, context)

        extractor: IncrementalExtractor[Idea] = IncrementalExtractor(idea_validator)
        collected: list[Idea] = []
        dropped = recovered = 0
        system, user = self.build_prompts(ids, context)
        try:
            async for fragment in self.producer.stream(system, user):
                for candidate in extractor.feed(fragment):
                    if assigner.exhausted:
                        logger.warning("Producer returned more ideas than requested; skipping")
                        continue
                    idea = self._from_candidate(candidate, assigner, context)
                    if idea is None:
                        dropped += 1
                        continue
                    if not candidate.accepted:
                        recovered += 1
                    collected.append(idea)
                    yield self.progress_event(len(collected) - 1, total, idea, context)
        except LLMError as exc:
            logger.warning("Ideation stream failed after %d ideas: %s", len(collected), exc)
            yield self.error_event(None, exc, transient=True)

        tail = extractor.unterminated_tail()
        if tail and not assigner.exhausted:
            logger.warning("Stream ended inside an idea object; attempting recovery")
            idea = self._recover(tail, assigner, context)
            if idea is None:
                dropped += 1
            else:
                recovered += 1
                collected.append(idea)
                yield self.progress_event(len(collected) - 1, total, idea, context)

        if dropped or recovered:
            logger.warning(
                "Ideation kept %d repaired and discarded %d unusable candidate objects",
                recovered, dropped,
            )
        if len(collected) != total:
            logger.warning("Expected %d ideas but produced %d", total, len(collected))

        if context.config.use_refinement and collected:
            refined: list[Idea] = []
            async for message in self._refine(collected, context):
                if isinstance(message, StageResult):
                    refined = message.output.ideas
                else:
                    yield message
            collected = refined

        output = StageOutput(ideas=collected)
        counts = {"droppedCount": dropped, "recoveredCount": recovered}
        for event in self.complete_events(output, counts):
            yield event
        yield StageResult(output)

    # -- refinement -------------------------------------------------------------

    def _batches(self, ideas: Sequence[Idea], size: int) -> list[Sequence[Idea]]:
        return [ideas[i:i + size] for i in range(0, len(ideas), size)]

    def refinement_status(self, number: int, count: int) -> StageEvent:
        return StageEvent(
            EventType.STATUS,
            f"🔍 Refining batch {number}/{count}",
            metadata={"stage": "refinement", "data": {"batch": number, "batches": count}},
        )

    def refined_progress(self, index: int, total: int, idea: Idea, context: StageContext) -> StageEvent:
        event = self.progress_event(index, total, idea, context)
        return StageEvent(
            event.type,
            f"🌟 Refined idea {index + 1}/{total}: {idea.title}",
            metadata={**event.metadata, "stage": "refinement"},
        )

    async def _refine(
        self, ideas: Sequence[Idea], context: StageContext
    ) -> AsyncIterator[StageMessage]:
        """Refine *ideas* in batches; a failed batch keeps its originals."""
        total = len(ideas)
        batches = self._batches(ideas, context.config.refinement_batch_size)
        result: list[Idea] = []
        for number, batch in enumerate(batches, start=1):
            yield self.refinement_status(number, len(batches))
            payload = json.dumps({"ideas": [idea.to_wire() for idea in batch]}, indent=2)
            try:
                text = await self.producer.complete(REFINEMENT_SYSTEM_PROMPT, payload)
            except LLMError as exc:
                logger.warning("Refinement batch %d failed: %s", number, exc)
                yield self.error_event(None, exc, transient=True)
                result.extend(batch)
                continue
            by_id = {
                idea.id: idea for idea in extract_objects(text, model_validator(Idea)).objects
            }
            for original in batch:
                refined = by_id.get(original.id)
                if refined is None:
                    logger.warning("Refinement dropped idea %s; keeping original", original.id)
                    result.append(original)
                    continue
                refined = refined.model_copy(update={"execution_mode": context.mode.mode})
                result.append(refined)
                yield self.refined_progress(len(result) - 1, total, refined, context)
        yield StageResult(StageOutput(ideas=result))

    def replay_events(self, output: StageOutput, context: StageContext) -> list[StageEvent]:
        ideas = output.ideas
        total = len(ideas)
        events = [self.start_event(total, context, cached=True)]
        events.extend(self.progress_event(i, total, idea, context) for i, idea in enumerate(ideas))
        if context.config.use_refinement and ideas:
            index = 0
            batches = self._batches(ideas, context.config.refinement_batch_size)
            for number, batch in enumerate(batches, start=1):
                events.append(self.refinement_status(number, len(batches)))
                for idea in batch:
                    events.append(self.refined_progress(index, total, idea, context))
                    index += 1
        events.extend(self.complete_events(output))
        return events
