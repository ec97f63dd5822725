"""Azure subscription (account) selection.

Lists the subscriptions visible to the active credential and picks the one
resources will be created in.

Selection rules:
- An explicitly requested subscription (id or display name) always wins
- A single enabled subscription is used without prompting
- Otherwise the operator chooses from a numbered list
"""

import logging
from dataclasses import dataclass
from typing import Any

from azure.core.exceptions import AzureError
from azure.mgmt.subscription import SubscriptionClient

from azprov.modules.interaction_handler import InteractionHandler

logger = logging.getLogger(__name__)


class SubscriptionSelectionError(Exception):
    """Raised when no usable subscription can be selected."""

    pass


@dataclass(frozen=True)
class Subscription:
    """Azure subscription summary."""

    subscription_id: str
    display_name: str
    state: str = "Enabled"
    tenant_id: str | None = None

    @property
    def label(self) -> str:
        return f"{self.display_name} ({self.subscription_id})"


def _state_name(state: Any) -> str:
    # SDK returns an enum on recent versions and a plain string on older ones
    if state is None:
        return "Unknown"
    return str(getattr(state, "value", state))


def list_subscriptions(credential: Any, include_disabled: bool = False) -> list[Subscription]:
    """List subscriptions visible to the credential.

    Args:
        credential: Azure Identity credential
        include_disabled: Also return subscriptions that are not Enabled

    Returns:
        Subscriptions sorted by display name

    Raises:
        SubscriptionSelectionError: If the subscription listing fails
    """
    try:
        client = SubscriptionClient(credential)
        raw = list(client.subscriptions.list())
    except AzureError as e:
        raise SubscriptionSelectionError(
            f"Failed to list Azure subscriptions. Run: az login. Error: {e}"
        ) from e

    subscriptions = []
    for sub in raw:
        state = _state_name(sub.state)
        if not include_disabled and state.lower() != "enabled":
            logger.debug(f"Skipping subscription {sub.subscription_id} in state {state}")
            continue
        subscriptions.append(
            Subscription(
                subscription_id=sub.subscription_id,
                display_name=sub.display_name or sub.subscription_id,
                state=state,
                tenant_id=getattr(sub, "tenant_id", None),
            )
        )

    subscriptions.sort(key=lambda s: s.display_name.lower())
    logger.debug(f"Found {len(subscriptions)} subscription(s)")
    return subscriptions


def select_subscription(
    subscriptions: list[Subscription],
    interaction: InteractionHandler,
    preferred: str | None = None,
) -> Subscription:
    """Pick the subscription to provision into.

    Args:
        subscriptions: Candidates, usually from list_subscriptions()
        interaction: Handler used to prompt when a choice is needed
        preferred: Subscription id or display name requested by the operator

    Returns:
        Selected subscription

    Raises:
        SubscriptionSelectionError: If there are no candidates or the
            preferred subscription is not among them
    """
    if not subscriptions:
        raise SubscriptionSelectionError(
            "No enabled Azure subscriptions found for this account. Run: az login"
        )

    if preferred:
        wanted = preferred.strip().lower()
        for sub in subscriptions:
            if sub.subscription_id.lower() == wanted or sub.display_name.lower() == wanted:
                logger.info(f"Using subscription: {sub.label}")
                return sub
        raise SubscriptionSelectionError(f"Subscription not found or not enabled: {preferred}")

    if len(subscriptions) == 1:
        sub = subscriptions[0]
        interaction.show_info(f"Using subscription: {sub.label}")
        return sub

    choices = [(sub.subscription_id, sub.label) for sub in subscriptions]
    index = interaction.prompt_choice("Select Azure subscription:", choices)
    sub = subscriptions[index]
    logger.info(f"Using subscription: {sub.label}")
    return sub


__all__ = [
    "Subscription",
    "SubscriptionSelectionError",
    "list_subscriptions",
    "select_subscription",
]
