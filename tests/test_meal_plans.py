import copy
import json

import pytest

from gympass import db
from gympass.errors import GenerationFailed, ValidationError
from gympass.models import Member
from gympass.services.meal_plans import MealPlan, MealPlanGenerator, parse_json_from_llm_response

from conftest import FakeLLMClient, NOW, SAMPLE_PLAN


class TestParseJson:
    def test_plain_json(self):
        assert parse_json_from_llm_response('{"a": 1}') == {'a': 1}

    def test_fenced_block(self):
        reply = '```json\n{"planTitle": "x"}\n```'
        assert parse_json_from_llm_response(reply) == {'planTitle': 'x'}

    def test_embedded_object(self):
        reply = 'Here is your plan: {"planTitle": "x", "n": 2} enjoy!'
        assert parse_json_from_llm_response(reply) == {'planTitle': 'x', 'n': 2}

    @pytest.mark.parametrize('reply', ['', None, 'no json here', '[1, 2]', '{broken'])
    def test_unusable(self, reply):
        assert parse_json_from_llm_response(reply) is None


class TestGenerate:
    def test_returns_validated_plan(self):
        client = FakeLLMClient(json.dumps(SAMPLE_PLAN, ensure_ascii=False))
        plan = MealPlanGenerator(client, model='test-model', temperature=0.2).generate(3000, 'bulking')

        assert isinstance(plan, MealPlan)
        assert plan.planTitle == SAMPLE_PLAN['planTitle']
        assert len(plan.snacks) == 2

        call = client.calls[0]
        assert call['model'] == 'test-model'
        assert call['temperature'] == 0.2
        assert call['response_format'] == {'type': 'json_object'}
        prompt = call['messages'][1]['content']
        assert '3000' in prompt
        assert 'high-protein' in prompt

    def test_single_round_trip(self):
        client = FakeLLMClient(content='not json')
        with pytest.raises(GenerationFailed):
            MealPlanGenerator(client).generate(2000)
        assert len(client.calls) == 1

    def test_fenced_reply_accepted(self):
        reply = '```json\n' + json.dumps(SAMPLE_PLAN) + '\n```'
        plan = MealPlanGenerator(FakeLLMClient(reply)).generate(2500, 'maintenance')
        assert plan.totalCalories == 3000

    def test_empty_reply(self):
        with pytest.raises(GenerationFailed):
            MealPlanGenerator(FakeLLMClient('')).generate(2000)

    def test_provider_error(self):
        client = FakeLLMClient(error=RuntimeError('quota exceeded'))
        with pytest.raises(GenerationFailed):
            MealPlanGenerator(client).generate(2000, 'weightLoss')

    def test_missing_client(self):
        with pytest.raises(GenerationFailed):
            MealPlanGenerator(None).generate(2000)

    def test_schema_mismatch(self):
        bad = copy.deepcopy(SAMPLE_PLAN)
        del bad['lunch']['alternatives']
        with pytest.raises(GenerationFailed):
            MealPlanGenerator(FakeLLMClient(json.dumps(bad))).generate(2000)

    def test_unexpected_field(self):
        bad = dict(SAMPLE_PLAN, notes='extra')
        with pytest.raises(GenerationFailed):
            MealPlanGenerator(FakeLLMClient(json.dumps(bad))).generate(2000)

    @pytest.mark.parametrize('calories', [0, -100, 'abc'])
    def test_invalid_calories(self, calories):
        client = FakeLLMClient(json.dumps(SAMPLE_PLAN))
        with pytest.raises(ValidationError):
            MealPlanGenerator(client).generate(calories)
        assert client.calls == []

    def test_unknown_goal(self):
        with pytest.raises(ValidationError):
            MealPlanGenerator(FakeLLMClient('{}')).generate(2000, 'cutting')


@pytest.mark.parametrize('snacks', [[], SAMPLE_PLAN['snacks'], SAMPLE_PLAN['snacks'] * 3])
def test_plan_survives_persistence_unchanged(services, owner, snacks):
    plan = MealPlan.model_validate(dict(SAMPLE_PLAN, snacks=snacks))
    members = services['members']
    member = members.register(owner, {'name': 'حسين', 'period': 'Monthly', 'classes': ['Iron']}, now=NOW)

    members.attach_meal_plan(member, plan.model_dump())
    member_id = member.id
    db.session.expunge_all()

    stored = db.session.get(Member, member_id).meal_plan
    assert MealPlan.model_validate(stored) == plan
    assert len(stored['snacks']) == len(snacks)


def test_regeneration_replaces_plan(services, owner):
    members = services['members']
    member = members.register(owner, {'name': 'حسين', 'period': 'Monthly', 'classes': ['Iron']}, now=NOW)

    members.attach_meal_plan(member, SAMPLE_PLAN)
    replacement = dict(SAMPLE_PLAN, planTitle='خطة إنقاص وزن - 1800 سعر حراري', snacks=[])
    members.attach_meal_plan(member, replacement)

    assert member.meal_plan == replacement
