"""Runtime navigation over a compiled step graph.

:class:`FormNavigator` walks a :class:`~stepforms.steps.FormDefinition` the
way a respondent does: selecting an option follows the step's explicit
conditions first and then the option's own target; "next" and "back" move
through nested sub-fields before moving between steps. Back navigation uses
the visit history, so returning from the terminal step lands on the branch
step the respondent actually came from rather than whatever step precedes it
in document order.

The mutable part of a session lives in :class:`NavigationState`, which can be
serialized with ``to_dict`` and restored with ``from_dict``.

Example:
    ```python
    nav = FormNavigator(compile_tree(tree))
    nav.select_option("main_selection", "vehicles")   # -> MOVED, step2_vehicles
    nav.select_option("vehicles_selection", "bike")   # -> MOVED, step_final
    nav.retreat()                                     # -> MOVED, step2_vehicles
    ```
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from .exceptions import UnknownTransitionError, ValidationError
from .steps import FINAL_STEP_ID, FieldOption, FormDefinition, FormField, FormStep

logger = logging.getLogger(__name__)


class NavigationOutcome(str, Enum):
    """Result of a navigation request."""

    MOVED = "moved"
    STAYED = "stayed"
    SUBMIT = "submit"


@dataclass
class TransitionRecord:
    """Record of a single move between steps.

    Attributes:
        from_step: Step id before the move.
        to_step: Step id after the move.
        timestamp: Unix timestamp of the move.
        trigger: What caused it ("select", "value", "next", "back", "jump",
            "restart").
        field_id: Field whose answer triggered the move, if any.
        value: The answer that triggered the move, if any.
    """

    from_step: str
    to_step: str
    timestamp: float
    trigger: str
    field_id: str | None = None
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransitionRecord:
        return cls(**data)


def create_transition_record(
    from_step: str,
    to_step: str,
    trigger: str,
    field_id: str | None = None,
    value: Any = None,
) -> TransitionRecord:
    """Create a transition record stamped with the current time."""
    return TransitionRecord(
        from_step=from_step,
        to_step=to_step,
        timestamp=time.time(),
        trigger=trigger,
        field_id=field_id,
        value=value,
    )


@dataclass
class NavigationState:
    """Mutable state of one respondent's pass through a form.

    Attributes:
        current_step_id: Step currently shown.
        field_path: Field ids leading into nested sub-fields of the current
            step; empty when the step's own fields are shown.
        values: Answers keyed by field id.
        history: Previously visited step ids, most recent last.
        completed: Whether the form has been submitted.
        transitions: Every move made, oldest first.
    """

    current_step_id: str
    field_path: list[str] = field(default_factory=list)
    values: dict[str, Any] = field(default_factory=dict)
    history: list[str] = field(default_factory=list)
    completed: bool = False
    transitions: list[TransitionRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_step_id": self.current_step_id,
            "field_path": list(self.field_path),
            "values": dict(self.values),
            "history": list(self.history),
            "completed": self.completed,
            "transitions": [t.to_dict() for t in self.transitions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NavigationState:
        return cls(
            current_step_id=data["current_step_id"],
            field_path=list(data.get("field_path", [])),
            values=dict(data.get("values", {})),
            history=list(data.get("history", [])),
            completed=bool(data.get("completed", False)),
            transitions=[
                TransitionRecord.from_dict(t) for t in data.get("transitions", [])
            ],
        )


def _is_answered(value: Any) -> bool:
    return value is not None and value != "" and value != []


class FormNavigator:
    """Drives a respondent through a compiled form.

    Args:
        form: The compiled form. Must contain at least one step.
        state: Session state to resume; a fresh session starts at the entry
            step (or the first step when there is no ``step1``).

    Raises:
        ValidationError: If the form has no steps or ``state`` points to a
            step the form does not have.
    """

    def __init__(self, form: FormDefinition, state: NavigationState | None = None) -> None:
        if not form.steps:
            raise ValidationError(
                "Cannot navigate a form with no steps", context={"form": form.name}
            )
        self._form = form
        if state is None:
            state = NavigationState(current_step_id=self._first_step().step_id)
        elif form.get_step(state.current_step_id) is None:
            raise ValidationError(
                f"Navigation state points to unknown step '{state.current_step_id}'",
                context={"form": form.name, "step_id": state.current_step_id},
            )
        self._state = state

    @property
    def form(self) -> FormDefinition:
        return self._form

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def current_step(self) -> FormStep:
        step = self._form.get_step(self._state.current_step_id)
        if step is None:
            raise ValidationError(
                f"Navigation state points to unknown step '{self._state.current_step_id}'",
                context={"form": self._form.name, "step_id": self._state.current_step_id},
            )
        return step

    @property
    def current_fields(self) -> tuple[FormField, ...]:
        """Fields on screen: the sub-fields being walked, else the step's fields."""
        if self._state.field_path:
            container = self.current_step.get_nested_field(self._state.field_path)
            if container is not None and container.sub_fields:
                return container.sub_fields
        return self.current_step.fields

    @property
    def is_first(self) -> bool:
        return self._form.step_index(self._state.current_step_id) == 0

    @property
    def is_last(self) -> bool:
        return (
            self.current_step.is_last_step
            or self._form.step_index(self._state.current_step_id) == len(self._form.steps) - 1
        )

    @property
    def progress(self) -> float:
        """Position of the current step in document order, in (0, 1]."""
        index = self._form.step_index(self._state.current_step_id)
        return (index + 1) / len(self._form.steps)

    @property
    def answers(self) -> dict[str, Any]:
        return dict(self._state.values)

    def select_option(self, field_id: str, value: str) -> NavigationOutcome:
        """Record a choice and follow the branch it selects.

        Multi-select fields toggle ``value`` in a list of answers; other
        fields replace their answer. Answers to other fields are kept.

        Returns:
            MOVED when the choice leads to another step, otherwise STAYED.
        """
        form_field = self._find_field(field_id)
        if form_field is None:
            logger.warning(
                "Step '%s' has no field '%s'; selection ignored",
                self._state.current_step_id, field_id,
            )
            return NavigationOutcome.STAYED

        option = form_field.find_option(value)
        selected = True
        if form_field.type.is_multiple:
            current = self._state.values.get(field_id)
            chosen = list(current) if isinstance(current, list) else []
            if value in chosen:
                chosen.remove(value)
                selected = False
            else:
                chosen.append(value)
            self._state.values[field_id] = chosen
        else:
            self._state.values[field_id] = value

        try:
            target = self._resolve_target(field_id, option if selected else None)
        except UnknownTransitionError as e:
            logger.warning("Staying on step: %s", e)
            return NavigationOutcome.STAYED
        if target is None:
            return NavigationOutcome.STAYED
        return self._move_to(target, "select", field_id=field_id, value=value)

    def set_value(self, field_id: str, value: Any) -> NavigationOutcome:
        """Record a free-form answer; the step's conditions may still branch."""
        self._state.values[field_id] = value
        try:
            target = self._resolve_target(field_id, None)
        except UnknownTransitionError as e:
            logger.warning("Staying on step: %s", e)
            return NavigationOutcome.STAYED
        if target is None:
            return NavigationOutcome.STAYED
        return self._move_to(target, "value", field_id=field_id, value=value)

    def enter_field(self, field_id: str) -> NavigationOutcome:
        """Descend into the sub-fields of ``field_id``."""
        form_field = next((f for f in self.current_fields if f.field_id == field_id), None)
        if form_field is None or not form_field.sub_fields:
            logger.debug("Field '%s' has no sub-fields to enter", field_id)
            return NavigationOutcome.STAYED
        self._state.field_path.append(field_id)
        return NavigationOutcome.MOVED

    def advance(self) -> NavigationOutcome:
        """Move forward: next sub-field, then the answered branch, then the next step.

        The answered branch is what :meth:`select_option` would follow for the
        answers already on this step, so "next" after a retreat stays on the
        respondent's branch.

        Returns:
            SUBMIT (and marks the session completed) when already on the last
            step, otherwise MOVED.
        """
        if self._shift_sub_field(1):
            return NavigationOutcome.MOVED

        if self.is_last:
            self._state.completed = True
            logger.info("Form '%s' submitted", self._form.name)
            return NavigationOutcome.SUBMIT

        target = self._answered_target()
        if target is None:
            index = self._form.step_index(self._state.current_step_id)
            target = self._form.steps[index + 1].step_id
        return self._move_to(target, "next")

    def retreat(self) -> NavigationOutcome:
        """Move back: previous sub-field, then the visit history, then document order."""
        if self._shift_sub_field(-1):
            return NavigationOutcome.MOVED

        index = self._form.step_index(self._state.current_step_id)
        if index <= 0:
            self._state.field_path.clear()
            return NavigationOutcome.STAYED

        if self._state.history:
            previous = self._state.history.pop()
            return self._move_to(previous, "back", record_history=False)
        return self._move_to(self._form.steps[index - 1].step_id, "back", record_history=False)

    def go_to_step(self, step_id: str) -> NavigationOutcome:
        """Jump straight to ``step_id``."""
        if self._form.get_step(step_id) is None:
            logger.warning("Cannot jump to unknown step '%s'", step_id)
            return NavigationOutcome.STAYED
        if step_id == self._state.current_step_id:
            return NavigationOutcome.STAYED
        return self._move_to(step_id, "jump")

    def reset(self) -> None:
        """Clear answers and history and return to the first step."""
        first = self._first_step().step_id
        self._state.transitions.append(
            create_transition_record(self._state.current_step_id, first, "restart")
        )
        self._state.current_step_id = first
        self._state.field_path.clear()
        self._state.values.clear()
        self._state.history.clear()
        self._state.completed = False
        logger.debug("Navigation for form '%s' reset", self._form.name)

    def missing_required(self) -> list[str]:
        """Ids of required fields on the current step that have no answer."""
        missing: list[str] = []

        def collect(fields: tuple[FormField, ...]) -> None:
            for form_field in fields:
                if form_field.required and not _is_answered(
                    self._state.values.get(form_field.field_id)
                ):
                    missing.append(form_field.field_id)
                collect(form_field.sub_fields)

        collect(self.current_step.fields)
        return missing

    def _first_step(self) -> FormStep:
        return self._form.entry_step or self._form.steps[0]

    def _find_field(self, field_id: str) -> FormField | None:
        stack = list(self.current_step.fields)
        while stack:
            form_field = stack.pop()
            if form_field.field_id == field_id:
                return form_field
            stack.extend(form_field.sub_fields)
        return None

    def _resolve(self, target: str) -> str:
        if target == FINAL_STEP_ID:
            last = self._form.last_step
            if last is not None:
                return last.step_id
        if self._form.get_step(target) is None:
            raise UnknownTransitionError(self._state.current_step_id, target)
        return target

    def _resolve_target(self, field_id: str, option: FieldOption | None) -> str | None:
        for condition in self.current_step.next_step_conditions:
            if condition.matches(self._state.values):
                return self._resolve(condition.next_step_id)
        if option is None:
            return None
        if option.target is None:
            raise UnknownTransitionError(self._state.current_step_id, None, field_id)
        return self._resolve(option.target)

    def _answered_target(self) -> str | None:
        """Target implied by answers already given on the current step."""
        try:
            for condition in self.current_step.next_step_conditions:
                if condition.matches(self._state.values):
                    return self._resolve(condition.next_step_id)
            for form_field in self.current_step.fields:
                answer = self._state.values.get(form_field.field_id)
                chosen = answer if isinstance(answer, list) else [answer]
                for value in chosen:
                    option = form_field.find_option(value) if isinstance(value, str) else None
                    if option is not None and option.target is not None:
                        return self._resolve(option.target)
        except UnknownTransitionError as e:
            logger.warning("Ignoring answered branch: %s", e)
        return None

    def _shift_sub_field(self, delta: int) -> bool:
        path = self._state.field_path
        if not path:
            return False
        if len(path) == 1:
            siblings = self.current_step.fields
        else:
            parent = self.current_step.get_nested_field(path[:-1])
            siblings = parent.sub_fields if parent is not None else ()
        ids = [f.field_id for f in siblings if f.sub_fields]
        if path[-1] in ids:
            index = ids.index(path[-1]) + delta
            if 0 <= index < len(ids):
                path[-1] = ids[index]
                return True
        path.clear()
        return False

    def _move_to(
        self,
        step_id: str,
        trigger: str,
        field_id: str | None = None,
        value: Any = None,
        record_history: bool = True,
    ) -> NavigationOutcome:
        from_step = self._state.current_step_id
        if record_history:
            self._state.history.append(from_step)
        self._state.current_step_id = step_id
        self._state.field_path.clear()
        self._state.transitions.append(
            create_transition_record(from_step, step_id, trigger, field_id, value)
        )
        logger.debug("Moved from '%s' to '%s' (%s)", from_step, step_id, trigger)
        return NavigationOutcome.MOVED
