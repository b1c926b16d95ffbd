from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, ContextManager, Dict, Optional, Sequence, Tuple

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from secret_angel.db import get_session
from secret_angel.services import game_flow
from secret_angel.services.assignment import DEFAULT_MAX_ATTEMPTS, AssignmentError
from secret_angel.services.conversation import (
    ConversationState,
    ConversationStep,
    ConversationStore,
    RosterEntry,
)
from secret_angel.services.game_flow import LookupStatus, PersistenceFault
from secret_angel.services.rate_limit import RateLimiter
from secret_angel.services.validation import (
    MAX_NAME_LENGTH,
    ValidationError,
    parse_restrictions,
    validate_name,
    validate_number,
    validate_wishlist,
)

SendFunc = Callable[..., Awaitable[Any]]
SessionFactory = Callable[[], ContextManager[Session]]

USER_COMMANDS: Dict[str, str] = {
    "start": "Show welcome message",
    "register": "Register as a participant",
    "myassignment": "Check who you are gifting to",
}
ADMIN_COMMANDS: Dict[str, str] = {
    "participants": "(Admin) List all participants",
    "creategroups": "(Admin) Create groups and assign angels",
    "cleardata": "(Admin) Clear all bot data (requires confirmation)",
}

ADMIN_ONLY = "Sorry, this command is for admins only."
RATE_LIMITED = "You're sending requests too quickly. Please wait a moment before trying again."
INVALID_NAME = (
    "Please provide a valid name (letters, numbers, spaces, hyphens and underscores only, "
    f"max {MAX_NAME_LENGTH} characters)."
)
INVALID_RESTRICTIONS = (
    "Invalid restrictions format. Please enter pairs as 'Name1, Name2' (one per line), "
    "or send 'none'. Participant names must match exactly."
)


class AuthorizationError(PermissionError):
    pass


def parse_command(text: str) -> Optional[str]:
    """Return the command name of a ``/command@bot args`` message, if it is one."""
    if not text or not text.startswith("/"):
        return None
    token = text.split(maxsplit=1)[0][1:]
    return token.split("@", 1)[0].lower()


class SecretAngelFlow:
    """Conversation state machine driving registration and group creation.

    Events for one chat are handled one at a time; database work runs in a
    worker thread so other chats keep moving.
    """

    def __init__(
        self,
        send: SendFunc,
        admin_id: int,
        conversations: Optional[ConversationStore] = None,
        rate_limiter: Optional[RateLimiter] = None,
        session_factory: SessionFactory = get_session,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._send = send
        self.admin_id = admin_id
        self.conversations = conversations if conversations is not None else ConversationStore()
        self.rate_limiter = rate_limiter
        self._session_factory = session_factory
        self.max_attempts = max_attempts
        self._rng = rng
        self._orchestration_lock = asyncio.Lock()

        self._commands: Dict[str, Callable[[int, int], Awaitable[None]]] = {
            "start": self._start,
            "register": self._register,
            "myassignment": self._my_assignment,
            "participants": self._participants,
            "creategroups": self._create_groups,
            "cleardata": self._clear_data,
        }
        self._steps: Dict[ConversationStep, Callable[[int, int, ConversationState, str], Awaitable[None]]] = {
            ConversationStep.AWAITING_NAME: self._on_name,
            ConversationStep.AWAITING_WISHLIST: self._on_wishlist,
            ConversationStep.AWAITING_NAME_FOR_ASSIGNMENT: self._on_assignment_name,
            ConversationStep.AWAITING_CLEAR_CONFIRMATION: self._on_clear_confirmation,
            ConversationStep.AWAITING_NUM_GROUPS: self._on_num_groups,
            ConversationStep.AWAITING_RESTRICTIONS: self._on_restrictions,
        }

    def is_admin(self, user_id: int) -> bool:
        return bool(self.admin_id) and user_id == self.admin_id

    def require_admin(self, user_id: int, message: str = ADMIN_ONLY) -> None:
        if not self.is_admin(user_id):
            raise AuthorizationError(message)

    async def handle_message(self, chat_id: int, user_id: int, text: Optional[str]) -> None:
        command = parse_command(text or "")
        if command is not None:
            await self.handle_command(chat_id, user_id, command)
        else:
            await self.handle_text(chat_id, user_id, text or "")

    async def handle_command(self, chat_id: int, user_id: int, command: str) -> None:
        if not self._admit(user_id):
            await self.send(chat_id, RATE_LIMITED)
            return

        async with self.conversations.locked(chat_id):
            previous = self.conversations.clear(chat_id)
            if previous is not None:
                logger.bind(chat_id=chat_id, step=previous.step.value).info(
                    "Clearing conversation state due to new command"
                )

            handler = self._commands.get(command)
            if handler is None:
                await self.send(chat_id, "Sorry, I don't know that command. Use /start to see what I can do.")
                return

            try:
                if command in ADMIN_COMMANDS:
                    self.require_admin(user_id)
                await handler(chat_id, user_id)
            except AuthorizationError as exc:
                logger.bind(chat_id=chat_id, user_id=user_id, command=command).warning("Admin command rejected")
                await self.send(chat_id, str(exc))

    async def handle_text(self, chat_id: int, user_id: int, text: str) -> None:
        if not self._admit(user_id):
            await self.send(chat_id, RATE_LIMITED)
            return

        async with self.conversations.locked(chat_id):
            state = self.conversations.get(chat_id)
            if state is None:
                logger.bind(chat_id=chat_id).debug("Ignoring text outside of a conversation")
                return

            try:
                await self._steps[state.step](chat_id, user_id, state, text)
            except ValidationError as exc:
                logger.bind(chat_id=chat_id, step=state.step.value).debug("Invalid input: {error}", error=str(exc))
                await self.send(chat_id, self._reprompt(state))
            except AuthorizationError as exc:
                logger.bind(chat_id=chat_id, user_id=user_id, step=state.step.value).warning(
                    "Non-admin reply to an admin conversation"
                )
                self.conversations.clear(chat_id)
                await self.send(chat_id, str(exc))

    async def send(self, chat_id: int, text: str, rich: bool = False) -> None:
        await self._send(chat_id, text, rich=rich)

    def _admit(self, user_id: int) -> bool:
        if self.rate_limiter is None:
            return True
        return self.rate_limiter.allow(f"user:{user_id}").allowed

    def _in_session(self, operation, *args):
        with self._session_factory() as session:
            return operation(session, *args)

    async def _run_db(self, operation, *args):
        return await asyncio.to_thread(self._in_session, operation, *args)

    def _reprompt(self, state: ConversationState) -> str:
        if state.step == ConversationStep.AWAITING_NUM_GROUPS:
            return f"Please enter a valid number between 1 and {state.participant_count} for the groups."
        if state.step == ConversationStep.AWAITING_RESTRICTIONS:
            return INVALID_RESTRICTIONS
        return INVALID_NAME

    async def _start(self, chat_id: int, user_id: int) -> None:
        await self.send(
            chat_id,
            "Welcome to the Secret Angel Bot!\n\n"
            "/register - sign up or update your wishlist\n"
            "/myassignment - find out who you are gifting to",
        )

    async def _register(self, chat_id: int, user_id: int) -> None:
        self.conversations.start(chat_id, ConversationStep.AWAITING_NAME)
        await self.send(chat_id, "Okay, let's get you registered! What's your name?")

    async def _my_assignment(self, chat_id: int, user_id: int) -> None:
        self.conversations.start(chat_id, ConversationStep.AWAITING_NAME_FOR_ASSIGNMENT)
        await self.send(chat_id, "Okay, let's find your assignment. What name did you register with?")

    async def _participants(self, chat_id: int, user_id: int) -> None:
        try:
            participants = await self._run_db(game_flow.list_participants)
        except SQLAlchemyError:
            logger.bind(chat_id=chat_id).exception("Failed to fetch participants")
            await self.send(chat_id, "Sorry, something went wrong while fetching the participant list.")
            return

        if not participants:
            await self.send(chat_id, "No participants have registered yet.")
            return
        await self.send(chat_id, game_flow.format_participants(participants), rich=True)

    async def _clear_data(self, chat_id: int, user_id: int) -> None:
        self.conversations.start(chat_id, ConversationStep.AWAITING_CLEAR_CONFIRMATION)
        await self.send(
            chat_id,
            "⚠️ <b>WARNING:</b> Are you sure you want to clear ALL participant, group, and assignment data? "
            "This cannot be undone. Reply with 'yes' to confirm.",
            rich=True,
        )

    async def _create_groups(self, chat_id: int, user_id: int) -> None:
        try:
            roster = await self._run_db(game_flow.snapshot_roster)
        except SQLAlchemyError:
            logger.bind(chat_id=chat_id).exception("Failed to fetch participants for group creation")
            await self.send(chat_id, "Sorry, something went wrong before starting group creation.")
            return

        if len(roster) < 2:
            await self.send(chat_id, "You need at least 2 registered participants to create groups.")
            return

        self.conversations.start(chat_id, ConversationStep.AWAITING_NUM_GROUPS, roster=roster)
        await self.send(chat_id, f"There are {len(roster)} participants. How many groups do you want to create?")

    async def _on_name(self, chat_id: int, user_id: int, state: ConversationState, text: str) -> None:
        state.name = validate_name(text)
        state.step = ConversationStep.AWAITING_WISHLIST
        await self.send(
            chat_id,
            f"Got it, {state.name}! Now, what's on your wishlist? (Optional, send 'skip' if you have none)",
        )

    async def _on_wishlist(self, chat_id: int, user_id: int, state: ConversationState, text: str) -> None:
        wishlist = "" if text.strip().lower() == "skip" else validate_wishlist(text)
        self.conversations.clear(chat_id)

        try:
            result = await self._run_db(game_flow.register_participant, state.name, wishlist)
        except SQLAlchemyError:
            logger.bind(chat_id=chat_id, name=state.name).exception("Failed to register participant")
            await self.send(chat_id, "Sorry, there was an error trying to register you. Please try again later.")
            return

        wishlist_note = "Your wishlist is saved/updated." if result.wishlist else "Your wishlist is cleared."
        await self.send(
            chat_id,
            f'Great! You\'re registered as "{result.name}". {wishlist_note} '
            "You can use /myassignment later to check your Secret Angel.",
        )

    async def _on_assignment_name(self, chat_id: int, user_id: int, state: ConversationState, text: str) -> None:
        name = validate_name(text)
        self.conversations.clear(chat_id)

        try:
            lookup = await self._run_db(game_flow.lookup_assignment, name)
        except SQLAlchemyError:
            logger.bind(chat_id=chat_id, name=name).exception("Failed to fetch assignment")
            await self.send(
                chat_id, "Sorry, something went wrong while fetching your assignment. Please try again later."
            )
            return

        if lookup.status == LookupStatus.FOUND:
            await self.send(
                chat_id,
                f"Okay, {name}, you are the Secret Angel for: <b>{lookup.receiver_name}</b>!\n\n"
                f"Their wishlist:\n{lookup.receiver_wishlist or 'No wishlist provided.'}",
                rich=True,
            )
        elif lookup.status == LookupStatus.NOT_ASSIGNED:
            await self.send(
                chat_id,
                f"Hi {name}, it looks like assignments haven't been made yet, or you weren't included "
                "in the latest round. Please check back later or contact the admin.",
            )
        else:
            await self.send(
                chat_id,
                f'Sorry, I couldn\'t find a registration for the name "{name}". '
                "Please make sure you entered it correctly or use /register first.",
            )

    async def _on_clear_confirmation(
        self, chat_id: int, user_id: int, state: ConversationState, text: str
    ) -> None:
        self.require_admin(user_id, "Confirmation error. Only the admin can confirm data clearing.")
        self.conversations.clear(chat_id)

        if text.strip().lower() != "yes":
            await self.send(chat_id, "Data clearing cancelled.")
            return

        try:
            await self._run_db(game_flow.clear_all_data)
        except SQLAlchemyError:
            logger.bind(chat_id=chat_id).exception("Failed to clear data")
            await self.send(chat_id, "❌ Failed to clear data. Please try again later.")
            return

        logger.bind(user_id=user_id).info("Admin cleared all data")
        await self.send(chat_id, "✅ All participant, group, and assignment data has been cleared.")

    async def _on_num_groups(self, chat_id: int, user_id: int, state: ConversationState, text: str) -> None:
        self.require_admin(user_id, "State error. Only the admin can specify the number of groups.")
        state.num_groups = validate_number(text, 1, state.participant_count)
        state.step = ConversationStep.AWAITING_RESTRICTIONS
        await self.send(
            chat_id,
            f"Okay, {state.num_groups} groups. Now, please enter the restricted pairs, one pair per line, "
            "comma-separated (e.g., Alice, Bob). Send 'none' if there are no restrictions.",
        )

    async def _on_restrictions(self, chat_id: int, user_id: int, state: ConversationState, text: str) -> None:
        self.require_admin(user_id, "State error. Only the admin can provide restrictions.")
        restrictions = parse_restrictions(text, [entry.name for entry in state.roster])

        self.conversations.clear(chat_id)
        await self.send(
            chat_id,
            f"Got it. Processing {state.num_groups} groups with {len(restrictions)} restriction pair(s)...",
        )
        await self._run_orchestration(chat_id, user_id, state.roster, state.num_groups, restrictions)

    async def _run_orchestration(
        self,
        chat_id: int,
        user_id: int,
        roster: Sequence[RosterEntry],
        num_groups: int,
        restrictions: Sequence[Tuple[str, str]],
    ) -> None:
        log = logger.bind(chat_id=chat_id, user_id=user_id)
        try:
            async with self._orchestration_lock:
                summary = await self._run_db(
                    game_flow.create_groups, roster, num_groups, restrictions, self.max_attempts, self._rng
                )
        except AssignmentError as exc:
            log.warning("Group creation aborted: {error}", error=str(exc))
            await self.send(chat_id, f"❌ {exc} No changes were saved.")
            return
        except PersistenceFault as exc:
            log.opt(exception=exc).error("Group creation aborted on an internal mapping error")
            await self.send(
                chat_id, "❌ Internal error while saving the groups. No changes were saved. Please try again later."
            )
            return
        except SQLAlchemyError:
            log.exception("Group creation transaction failed")
            await self.send(
                chat_id,
                "❌ Something went wrong while saving the groups. No changes were saved. Please try again later.",
            )
            return

        log.info(
            "Admin created {groups} groups and {assignments} assignments",
            groups=summary.groups_created,
            assignments=summary.total_assignments,
        )
        await self.send(chat_id, game_flow.format_summary(summary), rich=True)
