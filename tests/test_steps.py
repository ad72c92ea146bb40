"""Tests for the step graph model."""

import json

import pytest
import yaml

from stepforms.exceptions import SerializationError
from stepforms.steps import (
    FieldOption,
    FieldType,
    FormDefinition,
    FormField,
    FormStep,
    StepCondition,
)


def _field(**overrides):
    data = {
        "fieldId": "main_selection",
        "type": "image_select",
        "label": "Choose an option",
        "required": True,
        "options": [
            {"optionId": "a", "label": "A", "value": "a", "imageUrl": "", "nextFieldId": "step_final"},
        ],
    }
    data.update(overrides)
    return data


class TestFieldType:
    def test_choice_types(self):
        assert FieldType.RADIO.is_choice
        assert FieldType.IMAGE_SELECT.is_choice
        assert not FieldType.EMAIL.is_choice

    def test_multiple_types(self):
        assert FieldType.CHECKBOX.is_multiple
        assert not FieldType.RADIO.is_multiple


class TestFieldOption:
    def test_target_prefers_next_step_id(self):
        option = FieldOption("a", "A", "a", next_field_id="step2_a", next_step_id="step9_b")
        assert option.target == "step9_b"

    def test_from_dict_blank_targets(self):
        option = FieldOption.from_dict(
            {"optionId": "a", "label": "A", "value": "a", "nextFieldId": "", "imageUrl": None}
        )
        assert option.next_field_id is None
        assert option.image_url == ""
        assert option.target is None

    def test_to_dict_omits_missing_targets(self):
        d = FieldOption("a", "A", "a").to_dict()
        assert d == {"optionId": "a", "label": "A", "value": "a", "imageUrl": ""}

    def test_missing_option_id(self):
        with pytest.raises(SerializationError, match="optionId"):
            FieldOption.from_dict({"label": "A"})


class TestFormField:
    def test_from_dict(self):
        form_field = FormField.from_dict(_field())
        assert form_field.type is FieldType.IMAGE_SELECT
        assert form_field.find_option("a").option_id == "a"
        assert form_field.find_option("b") is None

    def test_unknown_type(self):
        with pytest.raises(SerializationError, match="Unknown field type"):
            FormField.from_dict(_field(type="hologram"))

    def test_text_field_has_no_options_key(self):
        d = FormField("email", FieldType.EMAIL, "Email").to_dict()
        assert "options" not in d
        assert "subFields" not in d

    def test_sub_fields(self):
        form_field = FormField.from_dict(
            _field(subFields=[{"fieldId": "extra", "type": "text", "label": "Extra"}])
        )
        assert form_field.find_sub_field("extra").type is FieldType.TEXT


class TestStepCondition:
    def test_matches_scalar(self):
        condition = StepCondition("main_selection", "a", "step3_x")
        assert condition.matches({"main_selection": "a"})
        assert not condition.matches({"main_selection": "b"})
        assert not condition.matches({})

    def test_matches_list(self):
        condition = StepCondition("pick", "car", "step3_x")
        assert condition.matches({"pick": ["bike", "car"]})


class TestFormStep:
    def test_round_trip_keys(self):
        step = FormStep.from_dict(
            {
                "stepId": "step1",
                "title": "T",
                "fields": [_field()],
                "nextStepCondition": [
                    {"fieldId": "main_selection", "value": "a", "nextStepId": "step_final"}
                ],
            }
        )
        assert step.next_step_conditions[0].next_step_id == "step_final"
        d = step.to_dict()
        assert "isLastStep" not in d
        assert d["nextStepCondition"][0]["fieldId"] == "main_selection"

    def test_null_conditions_tolerated(self):
        step = FormStep.from_dict({"stepId": "s", "title": "T", "fields": [], "nextStepCondition": None})
        assert step.next_step_conditions == ()

    def test_get_nested_field(self):
        inner = FormField("inner", FieldType.TEXT, "Inner")
        outer = FormField("outer", FieldType.TEXT, "Outer", sub_fields=(inner,))
        step = FormStep("s", "T", fields=(outer,))
        assert step.get_nested_field(["outer", "inner"]) is inner
        assert step.get_nested_field(["outer", "nope"]) is None
        assert step.get_nested_field([]) is None


class TestFormDefinition:
    def test_accessors(self, vehicles_form):
        assert vehicles_form.step_ids == ["step1", "step2_vehicles", "step_final"]
        assert vehicles_form.entry_step.step_id == "step1"
        assert vehicles_form.last_step.step_id == "step_final"
        assert vehicles_form.step_index("step2_vehicles") == 1
        assert vehicles_form.step_index("nope") == -1
        assert vehicles_form.get_step("nope") is None

    def test_json_round_trip(self, deep_form):
        assert FormDefinition.from_json(deep_form.to_json(indent=2)) == deep_form

    def test_from_json_invalid(self):
        with pytest.raises(SerializationError, match="not valid JSON"):
            FormDefinition.from_json("{not json")

    def test_from_dict_not_object(self):
        with pytest.raises(SerializationError):
            FormDefinition.from_dict(["step1"])

    def test_to_yaml(self, vehicles_form):
        data = yaml.safe_load(vehicles_form.to_yaml())
        assert data == json.loads(vehicles_form.to_json())
