"""
app/flow/states.py

Purpose: Defines all conversation states

- Enum for each step in the add-account and settings workflows
- Single source of truth for flow stages
- Metadata for each state (display name, progress)
"""

from enum import Enum
from typing import Dict, Optional
from dataclasses import dataclass


class ConversationState(str, Enum):
    """
    Defines all possible states of a user's conversation.
    IDLE means no workflow is in flight.
    """

    IDLE = "IDLE"

    # Add-account workflow
    AWAIT_ACCOUNT = "AWAIT_ACCOUNT"
    AWAIT_CUSTOMER_CODE = "AWAIT_CUSTOMER_CODE"

    # Settings workflows
    AWAIT_THRESHOLD = "AWAIT_THRESHOLD"
    AWAIT_INTERVAL = "AWAIT_INTERVAL"


@dataclass
class StateMetadata:
    """
    Metadata associated with each conversation state.
    """
    name: ConversationState
    display_name: str
    step_number: Optional[int] = None  # For progress tracking
    total_steps: int = 2
    description: str = ""


STATE_METADATA: Dict[ConversationState, StateMetadata] = {
    ConversationState.IDLE: StateMetadata(
        name=ConversationState.IDLE,
        display_name="Idle",
        description="No workflow in progress - menu commands only"
    ),
    ConversationState.AWAIT_ACCOUNT: StateMetadata(
        name=ConversationState.AWAIT_ACCOUNT,
        display_name="Enter Account",
        step_number=1,
        description="Collect the student / card number"
    ),
    ConversationState.AWAIT_CUSTOMER_CODE: StateMetadata(
        name=ConversationState.AWAIT_CUSTOMER_CODE,
        display_name="Enter School Code",
        step_number=2,
        description="Collect the customer code and verify against the provider"
    ),
    ConversationState.AWAIT_THRESHOLD: StateMetadata(
        name=ConversationState.AWAIT_THRESHOLD,
        display_name="Enter Threshold",
        description="Collect a new low-balance threshold"
    ),
    ConversationState.AWAIT_INTERVAL: StateMetadata(
        name=ConversationState.AWAIT_INTERVAL,
        display_name="Enter Interval",
        description="Collect a new check interval in minutes"
    ),
}


def get_state_metadata(state: ConversationState) -> StateMetadata:
    """
    Retrieves metadata for a given state.

    Args:
        state: Conversation state

    Returns:
        StateMetadata for the state
    """
    return STATE_METADATA.get(state, StateMetadata(
        name=state,
        display_name=state.value,
        description="Unknown state"
    ))


def get_progress_message(state: ConversationState) -> str:
    """
    Generates a progress message for the current state.

    Args:
        state: Current conversation state

    Returns:
        Progress message (e.g., "📍 Step 1 of 2"), empty for single-step states
    """
    metadata = get_state_metadata(state)
    if metadata.step_number and metadata.step_number > 0:
        return f"📍 Step {metadata.step_number} of {metadata.total_steps}"
    return ""
