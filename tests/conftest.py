"""Shared fixtures: a small number/string/contact action set and log capture."""

from typing import Callable

import pytest
from loguru import logger
from pydantic import BaseModel

from action_chain import ActionDefinition, ActionsExecutor, create_action


class NumberInput(BaseModel):
    num: float


class TextInput(BaseModel):
    text: str


class Contact(BaseModel):
    name: str
    email: str
    guy: bool


class NewContact(BaseModel):
    name: str
    email: str
    guy: bool


class ContactInput(BaseModel):
    contact: Contact


def build_actions(calls: list[str]) -> dict[str, ActionDefinition]:
    def number_to_string(args: NumberInput) -> str:
        calls.append("numberToString")
        return format(args.num, "g")

    def string_to_number(args: TextInput) -> float:
        calls.append("stringToNumber")
        return float(args.text)

    def create_contact(args: NewContact) -> Contact:
        calls.append("createContact")
        return Contact(**args.model_dump())

    def contact_to_string(args: ContactInput) -> str:
        calls.append("contactToString")
        contact = args.contact
        return f"{contact.name} <{contact.email}> guy: {contact.guy}"

    return {
        "stringToNumber": create_action(
            "stringToNumber", input_model=TextInput, output_type=float, execute=string_to_number
        ),
        "numberToString": create_action(
            "numberToString", input_model=NumberInput, output_type=str, execute=number_to_string
        ),
        "createContact": create_action(
            "createContact", input_model=NewContact, output_type=Contact, execute=create_contact
        ),
        "contactToString": create_action(
            "contactToString", input_model=ContactInput, output_type=str, execute=contact_to_string
        ),
    }


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def actions(calls: list[str]) -> dict[str, ActionDefinition]:
    return build_actions(calls)


@pytest.fixture
def action_factory() -> Callable[[list[str]], dict[str, ActionDefinition]]:
    return build_actions


@pytest.fixture
def executor(actions: dict[str, ActionDefinition]) -> ActionsExecutor:
    return ActionsExecutor(actions)


@pytest.fixture
def log_messages():
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
