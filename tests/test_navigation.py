"""Tests for the runtime form navigator."""

import logging

import pytest

from stepforms.exceptions import ValidationError
from stepforms.navigation import (
    FormNavigator,
    NavigationOutcome,
    NavigationState,
    TransitionRecord,
    create_transition_record,
)
from stepforms.steps import (
    FieldOption,
    FieldType,
    FormDefinition,
    FormField,
    FormStep,
    StepCondition,
)


@pytest.fixture
def nav(vehicles_form):
    return FormNavigator(vehicles_form)


def _sub_field_form():
    """One step whose field has two groups of nested sub-fields."""
    def inner(fid):
        return FormField(fid, FieldType.TEXT, fid, required=False)

    group_a = FormField("group_a", FieldType.TEXT, "A", required=False, sub_fields=(inner("a1"),))
    group_b = FormField("group_b", FieldType.TEXT, "B", required=False, sub_fields=(inner("b1"),))
    return FormDefinition(
        name="Nested",
        steps=(
            FormStep("step1", "Groups", fields=(group_a, group_b)),
            FormStep("step_final", "Done", fields=(), is_last_step=True),
        ),
    )


class TestNavigationScenario:
    """Select, branch and come back the way the respondent went."""

    def test_select_branches_and_retreat_follows_history(self, nav):
        assert nav.current_step.step_id == "step1"
        assert nav.select_option("main_selection", "vehicles") is NavigationOutcome.MOVED
        assert nav.current_step.step_id == "step2_vehicles"

        assert nav.select_option("vehicles_selection", "car") is NavigationOutcome.MOVED
        assert nav.current_step.step_id == "step_final"

        assert nav.retreat() is NavigationOutcome.MOVED
        assert nav.current_step.step_id == "step2_vehicles"
        assert nav.retreat() is NavigationOutcome.MOVED
        assert nav.current_step.step_id == "step1"
        assert nav.retreat() is NavigationOutcome.STAYED

    def test_answers_are_kept(self, nav):
        nav.select_option("main_selection", "vehicles")
        nav.select_option("vehicles_selection", "car")
        nav.retreat()
        assert nav.answers == {"main_selection": "vehicles", "vehicles_selection": ["car"]}

    def test_deep_branch(self, deep_form):
        nav = FormNavigator(deep_form)
        nav.select_option("main_selection", "vehicles")
        nav.select_option("vehicles_selection", "car")
        assert nav.current_step.step_id == "step3_car"
        nav.select_option("car_selection", "sports_car")
        assert nav.current_step.step_id == "step_final"
        nav.retreat()
        assert nav.current_step.step_id == "step3_car"

    def test_leaf_on_entry_goes_to_final(self, deep_form):
        nav = FormNavigator(deep_form)
        nav.select_option("main_selection", "houses")
        assert nav.is_last
        nav.retreat()
        assert nav.current_step.step_id == "step1"


class TestSelectOption:
    def test_checkbox_toggles(self, nav):
        nav.go_to_step("step2_vehicles")
        nav.select_option("vehicles_selection", "car")
        nav.go_to_step("step2_vehicles")
        assert nav.select_option("vehicles_selection", "car") is NavigationOutcome.STAYED
        assert nav.answers["vehicles_selection"] == []

    def test_unknown_field(self, nav, caplog):
        with caplog.at_level(logging.WARNING, logger="stepforms.navigation"):
            assert nav.select_option("nope", "x") is NavigationOutcome.STAYED
        assert "nope" in caplog.text
        assert nav.answers == {}

    def test_unknown_value_stays(self, nav):
        assert nav.select_option("main_selection", "boats") is NavigationOutcome.STAYED
        assert nav.current_step.step_id == "step1"
        assert nav.answers == {"main_selection": "boats"}

    def test_unresolvable_target_stays(self, caplog):
        form = FormDefinition(
            name="x",
            steps=(
                FormStep(
                    "step1", "T",
                    fields=(
                        FormField(
                            "pick", FieldType.RADIO, "Pick",
                            options=(FieldOption("a", "A", "a", next_field_id="step9_gone"),),
                        ),
                    ),
                ),
                FormStep("step_final", "Done", is_last_step=True),
            ),
        )
        nav = FormNavigator(form)
        with caplog.at_level(logging.WARNING, logger="stepforms.navigation"):
            assert nav.select_option("pick", "a") is NavigationOutcome.STAYED
        assert "step9_gone" in caplog.text

    def test_condition_wins_over_option_target(self):
        options = (
            FieldOption("a", "A", "a", next_field_id="step_final"),
            FieldOption("b", "B", "b", next_field_id="step_final"),
        )
        form = FormDefinition(
            name="x",
            steps=(
                FormStep(
                    "step1", "T",
                    fields=(FormField("pick", FieldType.RADIO, "Pick", options=options),),
                    next_step_conditions=(StepCondition("pick", "b", "step2_extra"),),
                ),
                FormStep("step2_extra", "Extra", fields=(FormField("note", FieldType.TEXT, "Note"),)),
                FormStep("step_final", "Done", is_last_step=True),
            ),
        )
        nav = FormNavigator(form)
        nav.select_option("pick", "b")
        assert nav.current_step.step_id == "step2_extra"
        nav.reset()
        nav.select_option("pick", "a")
        assert nav.current_step.step_id == "step_final"

    def test_sentinel_resolves_to_flagged_last_step(self):
        form = FormDefinition(
            name="x",
            steps=(
                FormStep(
                    "step1", "T",
                    fields=(
                        FormField(
                            "pick", FieldType.RADIO, "Pick",
                            options=(FieldOption("a", "A", "a", next_field_id="step_final"),),
                        ),
                    ),
                ),
                FormStep("contact", "Contact", is_last_step=True),
            ),
        )
        nav = FormNavigator(form)
        assert nav.select_option("pick", "a") is NavigationOutcome.MOVED
        assert nav.current_step.step_id == "contact"


class TestAdvanceAndRetreat:
    def test_advance_follows_answered_branch(self, deep_form):
        nav = FormNavigator(deep_form)
        nav.state.values["main_selection"] = "vehicles"
        assert nav.advance() is NavigationOutcome.MOVED
        assert nav.current_step.step_id == "step2_vehicles"

    def test_advance_without_answer_uses_document_order(self, deep_form):
        nav = FormNavigator(deep_form)
        nav.advance()
        assert nav.current_step.step_id == "step3_car"

    def test_advance_after_retreat_stays_on_branch(self, deep_form):
        nav = FormNavigator(deep_form)
        nav.select_option("main_selection", "vehicles")
        assert nav.current_step.step_id == "step2_vehicles"
        nav.retreat()
        assert nav.current_step.step_id == "step1"
        assert nav.advance() is NavigationOutcome.MOVED
        assert nav.current_step.step_id == "step2_vehicles"

    def test_retreat_on_first_step_after_jump_stays(self, nav):
        nav.select_option("main_selection", "vehicles")
        nav.go_to_step("step1")
        assert nav.state.history == ["step1", "step2_vehicles"]
        assert nav.retreat() is NavigationOutcome.STAYED
        assert nav.current_step.step_id == "step1"

    def test_submit_on_last_step(self, nav):
        nav.go_to_step("step_final")
        assert nav.advance() is NavigationOutcome.SUBMIT
        assert nav.state.completed

    def test_retreat_without_history_uses_document_order(self, vehicles_form):
        state = NavigationState(current_step_id="step_final")
        nav = FormNavigator(vehicles_form, state)
        nav.retreat()
        assert nav.current_step.step_id == "step2_vehicles"

    def test_sub_fields(self):
        nav = FormNavigator(_sub_field_form())
        assert nav.enter_field("group_a") is NavigationOutcome.MOVED
        assert [f.field_id for f in nav.current_fields] == ["a1"]

        assert nav.advance() is NavigationOutcome.MOVED
        assert nav.state.field_path == ["group_b"]
        assert [f.field_id for f in nav.current_fields] == ["b1"]

        assert nav.retreat() is NavigationOutcome.MOVED
        assert nav.state.field_path == ["group_a"]

        nav.advance()
        assert nav.advance() is NavigationOutcome.MOVED
        assert nav.current_step.step_id == "step_final"
        assert nav.state.field_path == []

    def test_enter_field_without_sub_fields(self, nav):
        assert nav.enter_field("main_selection") is NavigationOutcome.STAYED
        assert nav.state.field_path == []


class TestJumpAndReset:
    def test_go_to_step(self, nav):
        assert nav.go_to_step("step_final") is NavigationOutcome.MOVED
        assert nav.go_to_step("step_final") is NavigationOutcome.STAYED
        assert nav.go_to_step("nowhere") is NavigationOutcome.STAYED
        assert nav.state.history == ["step1"]

    def test_reset(self, nav):
        nav.select_option("main_selection", "vehicles")
        nav.reset()
        assert nav.current_step.step_id == "step1"
        assert nav.answers == {}
        assert nav.state.history == []
        assert nav.state.transitions[-1].trigger == "restart"


class TestProgressAndRequired:
    def test_position(self, nav):
        assert nav.is_first
        assert not nav.is_last
        assert nav.progress == pytest.approx(1 / 3)
        nav.go_to_step("step_final")
        assert nav.is_last
        assert nav.progress == 1.0

    def test_missing_required(self, nav):
        nav.go_to_step("step_final")
        assert nav.missing_required() == ["name", "email", "phone"]
        nav.set_value("name", "Ada")
        nav.set_value("email", "")
        assert nav.missing_required() == ["email", "phone"]

    def test_set_value_stays_without_conditions(self, nav):
        nav.go_to_step("step_final")
        assert nav.set_value("message", "hi") is NavigationOutcome.STAYED


class TestState:
    def test_transitions_recorded(self, nav):
        nav.select_option("main_selection", "vehicles")
        record = nav.state.transitions[0]
        assert (record.from_step, record.to_step, record.trigger) == ("step1", "step2_vehicles", "select")
        assert record.field_id == "main_selection"
        assert record.value == "vehicles"
        assert record.timestamp > 0

    def test_state_round_trip(self, vehicles_form, nav):
        nav.select_option("main_selection", "vehicles")
        nav.select_option("vehicles_selection", "bike")
        restored = FormNavigator(vehicles_form, NavigationState.from_dict(nav.state.to_dict()))
        assert restored.current_step.step_id == "step_final"
        assert restored.answers == nav.answers
        restored.retreat()
        assert restored.current_step.step_id == "step2_vehicles"

    def test_transition_record_factory(self):
        record = create_transition_record("a", "b", "next")
        assert TransitionRecord.from_dict(record.to_dict()) == record

    def test_empty_form_rejected(self):
        with pytest.raises(ValidationError, match="no steps"):
            FormNavigator(FormDefinition(name="x"))

    def test_state_for_unknown_step_rejected(self, vehicles_form):
        with pytest.raises(ValidationError):
            FormNavigator(vehicles_form, NavigationState(current_step_id="gone"))

    def test_current_step_on_corrupted_state(self, nav):
        nav.state.current_step_id = "gone"
        with pytest.raises(ValidationError, match="unknown step 'gone'"):
            nav.current_step
