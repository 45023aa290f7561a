"""Stage transition policy for a single conversation.

``decide`` maps an inbound event and the current snapshot to the next
snapshot plus the actions the runner has to perform. It never does I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

from insurance_bot.models import (
    Action,
    CallbackAction,
    Command,
    ConversationState,
    Delegate,
    InboundEvent,
    Photo,
    Reply,
    RequestExtraction,
    RequestGeneration,
    SendDocument,
    TextMessage,
)
from insurance_bot.states import Stage

PRICE_USD = 100

CONFIRM_YES = "confirm_yes"
CONFIRM_NO = "confirm_no"
CONFIRM_CHOICES = (("Yes", CONFIRM_YES), ("No", CONFIRM_NO))

POLICY_FILENAME = "CarInsurancePolicy.pdf"
POLICY_CAPTION = "Here’s your car insurance policy."

WELCOME_TEXT = (
    "👋 Welcome! I'll help you process your car insurance.\n\n"
    "Please submit a photo of your Passport first."
)
PASSPORT_RECEIVED_TEXT = "✅ Passport received. Now send your vehicle ID document."
VEHICLE_RECEIVED_TEXT = "✅ Vehicle document received."
EXTRACTING_TEXT = "🟣 Extracting data from documents, please wait."
CONFIRMED_TEXT = "✅ Information Confirmed!"
PRICE_PROMPT_TEXT = f"The price for car insurance is {PRICE_USD} USD. Do you agree? (Yes/No)"
RESUBMIT_TEXT = "❌ Information Incorrect. Please resubmit your documents."
POLICY_ISSUING_TEXT = "🎉 Great! Your policy will be issued shortly."
CLOSING_TEXT = "✨ Your policy is all set! If you have any questions, just let me know."
MUST_AGREE_TEXT = (
    "❌ Sorry, we can’t proceed without your confirmation.\n"
    f"Please, agree with the price for car insurance of {PRICE_USD} USD.\n\n"
    "Do you agree? (Yes/No)"
)
INSTRUCTION_ERROR_TEXT = "❌ Incorrect answer... Please follow instructions!"


@dataclass(frozen=True, slots=True)
class Decision:
    state: ConversationState
    actions: Tuple[Action, ...] = ()


def decide(event: InboundEvent, state: ConversationState) -> Decision:
    if isinstance(event, Photo):
        return _on_photo(event, state)
    if isinstance(event, CallbackAction):
        return _on_callback(event, state)
    if isinstance(event, TextMessage):
        if is_flow_text(event.text):
            return _on_flow_text(event.text, state)
        return Decision(state, (Delegate(event.text, state.stage),))
    if isinstance(event, Command) and _command_name(event.text) == "/start":
        return Decision(ConversationState(), (Reply(WELCOME_TEXT),))
    return _instruction_error(state)


def is_flow_text(text: str) -> bool:
    """True for text the stage table handles itself instead of the responder."""
    normalized = text.strip().lower()
    return normalized in ("yes", "no") or normalized.startswith("/")


def _on_photo(event: Photo, state: ConversationState) -> Decision:
    if state.stage is Stage.waiting_passport:
        next_state = replace(
            state,
            stage=Stage.waiting_vehicle_doc,
            passport_image=event.content,
        )
        return Decision(next_state, (Reply(PASSPORT_RECEIVED_TEXT),))

    if state.stage is Stage.waiting_vehicle_doc and state.passport_image is not None:
        next_state = replace(
            state,
            stage=Stage.waiting_price,
            vehicle_doc_image=event.content,
        )
        actions = (
            Reply(VEHICLE_RECEIVED_TEXT),
            Reply(EXTRACTING_TEXT),
            RequestExtraction(
                image=state.passport_image,
                vehicle_image=event.content,
                choices=CONFIRM_CHOICES,
            ),
        )
        return Decision(next_state, actions)

    return _instruction_error(state)


def _on_callback(event: CallbackAction, state: ConversationState) -> Decision:
    if event.token == CONFIRM_NO:
        return Decision(ConversationState(), (Reply(RESUBMIT_TEXT),))
    if event.token == CONFIRM_YES and state.stage is Stage.waiting_price:
        return Decision(state, (Reply(CONFIRMED_TEXT), Reply(PRICE_PROMPT_TEXT)))
    return _instruction_error(state)


def _on_flow_text(text: str, state: ConversationState) -> Decision:
    answer = text.strip().lower()
    if state.stage is Stage.waiting_price:
        if answer == "yes":
            actions = (
                Reply(POLICY_ISSUING_TEXT),
                RequestGeneration(),
                SendDocument(filename=POLICY_FILENAME, caption=POLICY_CAPTION),
                Reply(CLOSING_TEXT),
            )
            return Decision(replace(state, stage=Stage.complete), actions)
        if answer == "no":
            return Decision(state, (Reply(MUST_AGREE_TEXT),))
    if answer.startswith("/"):
        return decide(Command(answer), state)
    return _instruction_error(state)


def _instruction_error(state: ConversationState) -> Decision:
    return Decision(state, (Reply(INSTRUCTION_ERROR_TEXT),))


def _command_name(text: str) -> str:
    # "/start@SomeBot payload" -> "/start"
    head = text.strip().split(maxsplit=1)[0] if text.strip() else ""
    return head.split("@", 1)[0].lower()


__all__ = ["Decision", "decide", "is_flow_text"]
