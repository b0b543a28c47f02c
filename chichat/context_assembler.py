"""Context assembly for one customer message.

Role:
    Inspects the message, decides which fact sources apply, gathers the facts
    and composes the directive payload handed to generation. It owns the
    AssemblyContext contract and every step-level decision.

Step contracts:
    Intent Detection:
        Reads message text; sets intent and the effective customer name.
    Delivery Quote:
        Runs only when a destination was found. Resolver None (or any failure)
        leaves delivery_context empty; no fallback text is emitted.
    Availability:
        Runs only when availability was asked about. Always yields a block,
        either the listing or one of the fallback narratives.
    Name Context:
        Chooses the name-usage instruction.
    Compose:
        Concatenates persona, name, knowledge, delivery and availability blocks
        in fixed order; absent blocks are empty segments.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .config import Settings
from .delivery import FREE_MILES, MINIMUM_PAID_FEE, RATE_PER_MILE, DeliveryQuote, quote_delivery, round_half_up
from .distance import DistanceResolver
from .intent import DetectedIntent, detect_intent
from .inventory import AvailabilityFetcher, InventoryStore
from .knowledge.knowledge_store import KnowledgeStore
from .prompt_loader import load_prompt
from .step_runner import PipelineStep, StepRunner

logger = logging.getLogger("chichat.assembler")

PERSONA_PROMPT = "persona.txt"


@dataclass(frozen=True)
class IncomingMessage:
    """One inbound customer message plus the name the UI already knows."""
    text: str
    known_customer_name: Optional[str] = None


@dataclass(frozen=True)
class DirectivePayload:
    """Composed system instruction and the effective customer name for the reply."""
    system_prompt: str
    customer_name: Optional[str] = None


@dataclass
class AssemblyContext:
    """Mutable context passed through each assembly step."""
    request_id: str
    message: IncomingMessage
    customer_name: Optional[str] = None
    intent: DetectedIntent = field(default_factory=DetectedIntent)
    delivery_quote: Optional[DeliveryQuote] = None
    delivery_context: str = ""
    availability_context: str = ""
    name_context: str = ""
    system_prompt: str = ""
    executed_steps: List[str] = field(default_factory=list)


class ContextAssembler:
    def __init__(
        self,
        distance_resolver: DistanceResolver,
        availability_fetcher: AvailabilityFetcher,
        knowledge_store: KnowledgeStore,
        prompts_dir: Path,
        business_name: str = "Southwest Virginia Chihuahua",
    ) -> None:
        """Purpose: Wire the fact sources and build the ordered step runner.
        Inputs/Outputs: Inputs are the resolver, fetcher, knowledge store, prompt
            directory and business name; no return value.
        Side Effects / State: None beyond storing collaborators.
        Dependencies: StepRunner/PipelineStep and the step methods below.
        Failure Modes: None at init; persona/knowledge files are read lazily.
        If Removed: The chat endpoint has no way to build a directive payload.
        Testing Notes: Inject fake resolver/store to drive each branch.
        """
        self._distance_resolver = distance_resolver
        self._availability_fetcher = availability_fetcher
        self._knowledge_store = knowledge_store
        self._prompts_dir = prompts_dir
        self._business_name = business_name
        self._runner: StepRunner[AssemblyContext] = StepRunner(
            [
                PipelineStep("intent_detection", self._step_intent_detection),
                PipelineStep(
                    "delivery_quote",
                    self._step_delivery_quote,
                    skip_if=lambda ctx: not ctx.intent.wants_delivery_quote,
                ),
                PipelineStep(
                    "availability",
                    self._step_availability,
                    skip_if=lambda ctx: not ctx.intent.wants_availability,
                ),
                PipelineStep("name_context", self._step_name_context),
                PipelineStep("compose", self._step_compose),
            ]
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContextAssembler":
        """Build the production wiring from Settings; credentials are passed explicitly."""
        resolver = DistanceResolver(
            api_key=settings.google_maps_api_key,
            origin=settings.delivery_origin,
            timeout_seconds=settings.directions_timeout_seconds,
        )
        store = InventoryStore(
            mongo_uri=settings.mongo_uri,
            db_name=settings.mongo_db_name,
            collection_name=settings.mongo_puppies_collection,
            timeout_ms=settings.mongo_timeout_ms,
        )
        return cls(
            distance_resolver=resolver,
            availability_fetcher=AvailabilityFetcher(store, business_name=settings.business_name),
            knowledge_store=KnowledgeStore(settings.knowledge_path),
            prompts_dir=settings.prompts_dir,
            business_name=settings.business_name,
        )

    def assemble(self, message: IncomingMessage, request_id: Optional[str] = None) -> DirectivePayload:
        context = self.build_context(message, request_id=request_id)
        return DirectivePayload(system_prompt=context.system_prompt, customer_name=context.customer_name)

    def build_context(self, message: IncomingMessage, request_id: Optional[str] = None) -> AssemblyContext:
        """Purpose: Run every assembly step for one message.
        Inputs/Outputs: Input is IncomingMessage; output is the populated AssemblyContext.
        Side Effects / State: Up to one routing call and one store query.
        Dependencies: StepRunner.run.
        Failure Modes: Degraded fact sources never raise; persona/knowledge read
            errors propagate to the HTTP boundary.
        If Removed: assemble() has nothing to return.
        Testing Notes: Inspect executed_steps and each *_context field.
        """
        context = AssemblyContext(
            request_id=request_id or uuid.uuid4().hex,
            message=message,
            customer_name=message.known_customer_name,
        )
        context.executed_steps = self._runner.run(context, request_id=context.request_id)
        logger.info("request=%s steps=%s", context.request_id, ",".join(context.executed_steps))
        return context

    def _step_intent_detection(self, context: AssemblyContext) -> None:
        context.intent = detect_intent(context.message.text)
        if context.intent.disclosed_name:
            context.customer_name = context.intent.disclosed_name
        logger.info(
            "request=%s intent name=%s quote=%s round_trip=%s availability=%s",
            context.request_id,
            bool(context.intent.disclosed_name),
            context.intent.wants_delivery_quote,
            context.intent.is_round_trip,
            context.intent.wants_availability,
        )

    def _step_delivery_quote(self, context: AssemblyContext) -> None:
        """Purpose: Resolve distance, price it and render the delivery block.
        Inputs/Outputs: Reads intent.destination_text/is_round_trip; sets
            delivery_quote and delivery_context.
        Side Effects / State: One routing-service call.
        Dependencies: DistanceResolver, quote_delivery, render_delivery_context.
        Failure Modes: Unresolved distance or any exception leaves the block empty.
        If Removed: "How much to X?" questions get no pricing facts.
        Testing Notes: Resolver returning None must leave delivery_context == "".
        """
        destination = context.intent.destination_text or ""
        try:
            miles = self._distance_resolver.resolve_one_way_miles(destination)
            if miles is None:
                logger.info("request=%s step=delivery_quote route=no_distance", context.request_id)
                return
            quote = quote_delivery(miles, round_trip=context.intent.is_round_trip)
            context.delivery_quote = quote
            context.delivery_context = render_delivery_context(
                destination, quote, origin=self._distance_resolver.origin, business_name=self._business_name
            )
            logger.info(
                "request=%s step=delivery_quote miles=%.1f fee=%.2f round_trip=%s",
                context.request_id,
                quote.one_way_miles,
                quote.one_way_fee,
                quote.is_round_trip,
            )
        except Exception:
            logger.exception("request=%s Error computing delivery quote", context.request_id)
            context.delivery_quote = None
            context.delivery_context = ""

    def _step_availability(self, context: AssemblyContext) -> None:
        context.availability_context = self._availability_fetcher.build_context()

    def _step_name_context(self, context: AssemblyContext) -> None:
        context.name_context = build_name_context(context.customer_name)

    def _step_compose(self, context: AssemblyContext) -> None:
        persona = load_prompt(
            self._prompts_dir,
            PERSONA_PROMPT,
            {"BUSINESS_NAME": self._business_name, "ORIGIN": self._distance_resolver.origin},
        )
        context.system_prompt = compose_system_prompt(
            persona=persona,
            name_context=context.name_context,
            business_name=self._business_name,
            knowledge=self._knowledge_store.get_text(),
            delivery_context=context.delivery_context,
            availability_context=context.availability_context,
        )


def build_name_context(customer_name: Optional[str]) -> str:
    if customer_name:
        return f'The customer\'s first name is "{customer_name}". Use it occasionally in a friendly way.'
    return (
        "You do not know the customer's name yet. If it feels natural at the start of the chat, "
        "you may politely ask for their first name once."
    )


def render_delivery_context(
    destination: str,
    quote: DeliveryQuote,
    origin: str = "Marion, VA",
    business_name: str = "Southwest Virginia Chihuahua",
) -> str:
    """Purpose: Render the delivery-quote narrative block from a resolved quote.
    Inputs/Outputs: Inputs are destination text, quote, origin and business name;
        output is the block text.
    Side Effects / State: None.
    Dependencies: round_half_up and the fee policy constants.
    Failure Modes: None.
    If Removed: Resolved quotes never reach the model.
    Testing Notes: 60 miles -> "60 miles" and "$75"; round trip adds both figures.
    """
    miles_rounded = round_half_up(quote.one_way_miles)
    one_way_fee = round_half_up(quote.one_way_fee)
    free_miles = round_half_up(FREE_MILES)
    minimum = round_half_up(MINIMUM_PAID_FEE)

    round_trip_lines = ""
    round_trip_fee_text = "N/A"
    if quote.round_trip_miles is not None and quote.round_trip_fee is not None:
        round_trip_fee_text = str(round_half_up(quote.round_trip_fee))
        round_trip_lines = (
            "\n- User requested round-trip."
            f"\n- Approximate round-trip miles: {round_half_up(quote.round_trip_miles)} miles"
            f"\n- Estimated round-trip delivery fee (two directions): ${round_trip_fee_text}\n"
        )

    return f"""
DELIVERY QUOTE CONTEXT
- Destination the user asked about: "{destination}"
- Approximate one-way miles from {origin}: {miles_rounded} miles
- Policy A: First {free_miles} miles free (one-way), then ${RATE_PER_MILE:.2f} per mile.
- Minimum fee when outside the free zone: ${minimum} (one-way).
- Computed estimated one-way delivery fee: ${one_way_fee}{round_trip_lines}

How you should answer if the user asked "how much to {destination}":
- Give a short, friendly estimate like:
  "Based on about {miles_rounded} miles from {origin}, your estimated one-way delivery fee is around ${one_way_fee}."
- Mention that the first {free_miles} miles are free and then it's ${RATE_PER_MILE:.2f} per mile with at least a ${minimum} fee outside the free zone.
- If the user clearly asked for round-trip, also give the round-trip estimate ({round_trip_fee_text}).
- Do NOT dump the entire transportation policy. Just the numbers they need plus one short sentence.
- Always end with something like:
  "Final arrangements are confirmed directly with {business_name}."
"""


def compose_system_prompt(
    persona: str,
    name_context: str,
    business_name: str,
    knowledge: str,
    delivery_context: str = "",
    availability_context: str = "",
) -> str:
    # Fixed order; empty blocks stay as empty segments so spacing never shifts.
    return (
        f"\n{persona}\n\n"
        f"{name_context}\n\n"
        f"REFERENCE INFORMATION ABOUT {business_name.upper()}:\n"
        f"{knowledge}\n\n"
        f"{delivery_context}\n\n"
        f"{availability_context}\n"
    )
