"""Conversation construction for build-failure diagnosis."""

from .models import Conversation, FailureContext, Message, Role

INSTRUCTION_TEMPLATE = """You are a senior build engineer who specializes in diagnosing build failures.

Answer in plain language and go straight to the fix. Skip the preamble.

If the fix involves build configuration, include an example of the corrected configuration.

Analyze the following build error and provide a solution:"""


def build_query(context: FailureContext) -> str:
    """Format the failure context as the user query."""
    return f"""
Error message:
{context.message}

Error location:
{context.location}

Stack trace:
{context.stack}
"""


def build_conversation(context: FailureContext) -> Conversation:
    """Build the two-entry instruction + query conversation."""
    return Conversation(
        messages=(
            Message(role=Role.INSTRUCTION, content=INSTRUCTION_TEMPLATE),
            Message(role=Role.QUERY, content=build_query(context)),
        )
    )
