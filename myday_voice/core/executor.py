"""Command execution.

Maps a confirmed ``ParsedCommand`` onto exactly one domain-creation call.
Each creatable intent has a registered handler declaring its fields; every
field is filled from the matching entity when one was extracted, or from
the handler's default otherwise, and the result records which was which.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .commandlog import CommandLog, CommandLogStore, CommandNotFoundError, Outcome
from .domain import DomainCollaborators, ItemKind, ItemRef
from .intent.taxonomy import EntityType, IntentType, ParsedCommand, Priority
from .ledger import EXECUTE_ERROR_ACTION, EXECUTE_SUCCESS_ACTION, AuditLog

logger = logging.getLogger(__name__)

DefaultFn = Callable[[ParsedCommand], Any]


def _transcript(parsed: ParsedCommand) -> str:
    return parsed.transcript


def _reference_date(parsed: ParsedCommand) -> str:
    return parsed.reference_date.isoformat()


def _constant(value: Any) -> DefaultFn:
    return lambda parsed: value


def _empty_list(parsed: ParsedCommand) -> list:
    return []


# =============================================================================
# Handler Registry
# =============================================================================


@dataclass(frozen=True)
class FieldSpec:
    """One domain field a handler fills.

    Attributes:
        name: Field name passed to the collaborator
        entity_type: Entity that supplies the value
        default: Computes the value when the entity is absent
        multi: Collect every entity of the type into a list (tags)
        required: Missing value means the user must supply it
    """

    name: str
    entity_type: EntityType
    default: DefaultFn = _constant(None)
    multi: bool = False
    required: bool = False


@dataclass(frozen=True)
class IntentHandler:
    """Fields and target item kind for one intent."""

    intent: IntentType
    kind: ItemKind
    fields: tuple[FieldSpec, ...]


_TITLE = FieldSpec("title", EntityType.TITLE, _transcript)
_DATE = FieldSpec("date", EntityType.DATE, _reference_date)
_TIME = FieldSpec("time", EntityType.TIME)
_PRIORITY = FieldSpec("priority", EntityType.PRIORITY, _constant(Priority.MEDIUM.value))
_TAGS = FieldSpec("tags", EntityType.TAG, _empty_list, multi=True)
# No default: absence means one-time
_RECURRENCE = FieldSpec("recurrence", EntityType.RECURRENCE)

DEFAULT_HANDLERS: Mapping[IntentType, IntentHandler] = MappingProxyType(
    {
        handler.intent: handler
        for handler in (
            IntentHandler(
                IntentType.CREATE_TASK,
                ItemKind.TASK,
                (_TITLE, _DATE, _TIME, _PRIORITY, _TAGS, _RECURRENCE),
            ),
            IntentHandler(
                IntentType.CREATE_EVENT,
                ItemKind.EVENT,
                (
                    _TITLE,
                    _DATE,
                    _TIME,
                    FieldSpec("location", EntityType.LOCATION),
                    FieldSpec("attendees", EntityType.PERSON, _empty_list),
                    _RECURRENCE,
                    _TAGS,
                ),
            ),
            IntentHandler(
                IntentType.CREATE_TODO,
                ItemKind.TODO,
                (FieldSpec("text", EntityType.TITLE, _transcript), _PRIORITY),
            ),
            IntentHandler(
                IntentType.CREATE_JOURNAL,
                ItemKind.JOURNAL,
                (FieldSpec("content", EntityType.DESCRIPTION, _transcript), _DATE, _TAGS),
            ),
            IntentHandler(
                IntentType.CREATE_ROUTINE,
                ItemKind.ROUTINE,
                (
                    _TITLE,
                    FieldSpec("recurrence", EntityType.RECURRENCE, required=True),
                    _TIME,
                    _TAGS,
                ),
            ),
            IntentHandler(IntentType.CREATE_MILESTONE, ItemKind.MILESTONE, (_TITLE, _DATE)),
            IntentHandler(IntentType.CREATE_RESOLUTION, ItemKind.RESOLUTION, (_TITLE, _TAGS)),
            IntentHandler(
                IntentType.CREATE_PINNED_EVENT, ItemKind.PINNED_EVENT, (_TITLE, _DATE, _TIME)
            ),
            IntentHandler(
                IntentType.CREATE_ITEM,
                ItemKind.ITEM,
                (
                    FieldSpec("name", EntityType.TITLE, _transcript),
                    FieldSpec("quantity", EntityType.QUANTITY, _constant(1)),
                    _TAGS,
                ),
            ),
        )
    }
)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ExtractedField:
    """A field value and whether it came from the default table."""

    value: Any
    is_default: bool


@dataclass
class ExecutionResult:
    """Outcome of executing one command.

    Attributes:
        success: Whether an item was created
        created_id: Id of the created item
        entity_type: Kind of the created item
        extracted_fields: Every declared field with its provenance
        error: Human-readable failure reason
        needs_user_input: The command cannot run without more information
        command_id: Command log record for this execution
    """

    success: bool
    created_id: str | None = None
    entity_type: ItemKind | None = None
    extracted_fields: dict[str, ExtractedField] = field(default_factory=dict)
    error: str | None = None
    needs_user_input: bool = False
    command_id: str | None = None

    @property
    def created_item(self) -> ItemRef | None:
        if self.entity_type is None or self.created_id is None:
            return None
        return ItemRef(self.entity_type, self.created_id)

    def defaulted_fields(self) -> list[str]:
        """Names of fields filled from defaults."""
        return [name for name, f in self.extracted_fields.items() if f.is_default]


# =============================================================================
# Executor
# =============================================================================


class Executor:
    """Runs confirmed commands against the domain collaborators.

    Example:
        >>> executor = Executor(domain.collaborators(), store=log_store)
        >>> result = executor.execute(parsed, user_id="u1")
        >>> result.extracted_fields["priority"]
        ExtractedField(value='MEDIUM', is_default=True)
    """

    def __init__(
        self,
        collaborators: DomainCollaborators,
        store: CommandLogStore | None = None,
        audit: AuditLog | None = None,
        handlers: Mapping[IntentType, IntentHandler] = DEFAULT_HANDLERS,
        language: str = "en-US",
    ) -> None:
        """Initialize the executor.

        Args:
            collaborators: Creation/delete functions per item kind
            store: Command log store (writes skipped if None)
            audit: Audit log (entries skipped if None)
            handlers: Intent handler registry
            language: Language recorded on command logs
        """
        self.collaborators = collaborators
        self.store = store
        self.audit = audit
        self.handlers = handlers
        self.language = language

    def preview(self, parsed: ParsedCommand) -> dict[str, ExtractedField]:
        """Fill a command's fields without writing anything.

        Returns:
            Field map with provenance; empty when the intent has no handler
        """
        handler = self.handlers.get(parsed.intent_type)
        if handler is None:
            return {}
        return self._extract_fields(handler, parsed)

    def _extract_fields(
        self, handler: IntentHandler, parsed: ParsedCommand
    ) -> dict[str, ExtractedField]:
        fields: dict[str, ExtractedField] = {}
        for field_spec in handler.fields:
            if field_spec.multi:
                values = [e.normalized_value for e in parsed.all_of(field_spec.entity_type)]
                if values:
                    fields[field_spec.name] = ExtractedField(values, is_default=False)
                    continue
            else:
                entity = parsed.first(field_spec.entity_type)
                if entity is not None:
                    fields[field_spec.name] = ExtractedField(
                        entity.normalized_value, is_default=False
                    )
                    continue
            fields[field_spec.name] = ExtractedField(field_spec.default(parsed), is_default=True)
        return fields

    def execute(
        self,
        parsed: ParsedCommand,
        *,
        user_id: str | None = None,
        command_id: str | None = None,
    ) -> ExecutionResult:
        """Execute a confirmed command.

        Args:
            parsed: The confirmed command
            user_id: Owner of the command
            command_id: Existing (PENDING/FAILED) command log record to update

        Returns:
            ExecutionResult; failures are reported here, never raised
        """
        handler = self.handlers.get(parsed.intent_type)
        if handler is None:
            return self._fail(
                parsed,
                ExecutionResult(
                    success=False,
                    error=f"Intent {parsed.intent_type.value} is not implemented",
                    needs_user_input=True,
                ),
                user_id,
                command_id,
            )

        fields = self._extract_fields(handler, parsed)
        missing = [
            field_spec.name
            for field_spec in handler.fields
            if field_spec.required and fields[field_spec.name].value in (None, "", [])
        ]
        if missing:
            return self._fail(
                parsed,
                ExecutionResult(
                    success=False,
                    entity_type=handler.kind,
                    extracted_fields=fields,
                    error=f"Missing required field(s): {', '.join(missing)}",
                    needs_user_input=True,
                ),
                user_id,
                command_id,
            )

        creator = self.collaborators.creator(handler.kind)
        if creator is None:
            return self._fail(
                parsed,
                ExecutionResult(
                    success=False,
                    entity_type=handler.kind,
                    extracted_fields=fields,
                    error=f"Creating {handler.kind.value} items is not implemented",
                    needs_user_input=True,
                ),
                user_id,
                command_id,
            )

        item_id = str(uuid.uuid4())
        payload = {name: f.value for name, f in fields.items()}
        payload["id"] = item_id
        try:
            returned = creator(payload)
        except Exception as e:
            logger.warning(f"Creating {handler.kind.value} failed: {e}")
            return self._fail(
                parsed,
                ExecutionResult(
                    success=False,
                    entity_type=handler.kind,
                    extracted_fields=fields,
                    error=str(e) or e.__class__.__name__,
                ),
                user_id,
                command_id,
            )

        if isinstance(returned, str) and returned:
            item_id = returned
        ref = ItemRef(handler.kind, item_id)

        command_id = self._record_success(parsed, ref, user_id, command_id)
        self._audit(
            EXECUTE_SUCCESS_ACTION,
            {
                "intent": parsed.intent_type.value,
                "item_type": ref.kind.value,
                "item_id": ref.id,
                "voice_command_id": command_id,
            },
        )
        logger.info(f"Executed {parsed.intent_type.value} -> {ref}")

        return ExecutionResult(
            success=True,
            created_id=item_id,
            entity_type=handler.kind,
            extracted_fields=fields,
            command_id=command_id,
        )

    # =========================================================================
    # Best-effort persistence
    # =========================================================================

    def _fail(
        self,
        parsed: ParsedCommand,
        result: ExecutionResult,
        user_id: str | None,
        command_id: str | None,
    ) -> ExecutionResult:
        result.command_id = self._record_failure(parsed, result.error, user_id, command_id)
        self._audit(
            EXECUTE_ERROR_ACTION,
            {
                "intent": parsed.intent_type.value,
                "error": result.error,
                "voice_command_id": result.command_id,
            },
        )
        return result

    def _record_success(
        self,
        parsed: ParsedCommand,
        ref: ItemRef,
        user_id: str | None,
        command_id: str | None,
    ) -> str | None:
        if self.store is None:
            return command_id
        try:
            if command_id is not None:
                try:
                    self.store.set_outcome(command_id, Outcome.SUCCESS, created_item=ref)
                    return command_id
                except CommandNotFoundError:
                    logger.debug(f"Command {command_id} not found, logging a new record")
            log = self.store.create(
                CommandLog.from_parsed(
                    parsed,
                    user_id=user_id,
                    language=self.language,
                    retention_days=self.store.retention_days,
                    outcome=Outcome.SUCCESS,
                    created_item=ref,
                    now=self.store.clock(),
                )
            )
            return log.id
        except Exception as e:
            logger.warning(f"Failed to log successful command: {e}")
            return command_id

    def _record_failure(
        self,
        parsed: ParsedCommand,
        reason: str | None,
        user_id: str | None,
        command_id: str | None,
    ) -> str | None:
        if self.store is None:
            return command_id
        try:
            if command_id is not None:
                try:
                    self.store.set_outcome(command_id, Outcome.FAILED, failure_reason=reason)
                    return command_id
                except CommandNotFoundError:
                    logger.debug(f"Command {command_id} not found, logging a new record")
            log = self.store.create(
                CommandLog.from_parsed(
                    parsed,
                    user_id=user_id,
                    language=self.language,
                    retention_days=self.store.retention_days,
                    outcome=Outcome.FAILED,
                    failure_reason=reason,
                    now=self.store.clock(),
                )
            )
            return log.id
        except Exception as e:
            logger.warning(f"Failed to log failed command: {e}")
            return command_id

    def _audit(self, action_type: str, metadata: dict[str, Any]) -> None:
        if self.audit is None:
            return
        try:
            self.audit.append(action_type, metadata)
        except Exception as e:
            logger.warning(f"Failed to write audit entry: {e}")
