"""
Meal plan generation.

Wraps one chat-completion call to an OpenAI-compatible model. The reply must
be a JSON object matching `MealPlan`; anything else is a GenerationFailed.
No retries and no caching: every call is a fresh generation.
"""
import json
import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as SchemaError

from gympass.errors import GenerationFailed, ValidationError

logger = logging.getLogger(__name__)

GOALS = ('bulking', 'weightLoss', 'maintenance')

GOAL_INSTRUCTIONS = {
    'bulking': 'Focus on high-protein and complex carbs.',
    'weightLoss': 'Create a slight calorie deficit and focus on lean protein and vegetables.',
    'maintenance': 'Create a balanced plan.',
}


class Meal(BaseModel):
    model_config = ConfigDict(extra='forbid')

    meal: str = Field(min_length=1)
    description: str
    calories: float = Field(ge=0)
    alternatives: str


class MealPlan(BaseModel):
    """One day of meals, as stored on the member"""
    model_config = ConfigDict(extra='forbid')

    planTitle: str = Field(min_length=1)
    breakfast: Meal
    lunch: Meal
    dinner: Meal
    snacks: List[Meal] = Field(default_factory=list)
    totalCalories: float = Field(ge=0)


SYSTEM_INSTRUCTIONS = (
    "You are an expert Iraqi nutritionist creating a one-day meal plan for a user in Iraq. "
    "Output ONLY valid JSON (no markdown, no explanatory text) matching this schema:\n"
    "{\n"
    '  "planTitle": string,\n'
    '  "breakfast": {"meal": string, "description": string, "calories": number, "alternatives": string},\n'
    '  "lunch": {same shape as breakfast},\n'
    '  "dinner": {same shape as breakfast},\n'
    '  "snacks": [{same shape as breakfast}, ...],\n'
    '  "totalCalories": number\n'
    "}\n"
    "All text values must be in Arabic."
)

PROMPT_TEMPLATE = (
    "The target is approximately {calories} calories.\n"
    "The user's goal is: {goal}. {goal_instruction}\n\n"
    "VERY IMPORTANT: All meals and ingredients must be common, affordable, and readily available in Iraq.\n"
    "- FOCUS ON: Chicken breast, rice (taman), lentils (adas), chickpeas, local vegetables, "
    "yogurt (laban), dates, eggs, oats, and bread (khubz). Use dishes like Chicken Tashreeb, "
    "Lentil Soup (Shorbat Adas), grilled chicken/meat, and jajik salad.\n"
    "- AVOID: Exotic or expensive ingredients not common in Iraq, like avocado, quinoa, kale, or almond flour.\n\n"
    "For each meal and snack, provide a practical and simple alternative in case the primary option isn't available.\n"
    "Calculate approximate calories for each item and the total for the day, which should be close to the target.\n"
    "The planTitle should reflect the goal and calorie target, e.g. 'خطة تضخيم - 3000 سعر حراري'."
)


def parse_json_from_llm_response(response: str) -> Optional[dict]:
    """
    Parse a JSON object from a model reply.

    Handles a bare JSON string, a ```json fenced block, and an object
    embedded in surrounding text. Returns None when nothing parses.
    """
    if not response or not isinstance(response, str):
        return None

    try:
        parsed = json.loads(response)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        pass

    cleaned = response.strip()
    if cleaned.startswith('```'):
        first_newline = cleaned.find('\n')
        if first_newline > 0:
            cleaned = cleaned[first_newline:].strip()
        if cleaned.endswith('```'):
            cleaned = cleaned[:-3].strip()

    start = cleaned.find('{')
    end = cleaned.rfind('}') + 1
    if start >= 0 and end > start:
        try:
            parsed = json.loads(cleaned[start:end])
            return parsed if isinstance(parsed, dict) else None
        except json.JSONDecodeError:
            logger.warning(f"Could not parse JSON from model reply, preview: {response[:100]}")
    return None


class MealPlanGenerator:
    """Structured meal plans from a chat-completion client"""

    def __init__(self, client, model='gpt-4o-mini', temperature=0.4):
        self.client = client
        self.model = model
        self.temperature = temperature

    def build_messages(self, calories, goal):
        prompt = PROMPT_TEMPLATE.format(
            calories=int(round(calories)),
            goal=goal,
            goal_instruction=GOAL_INSTRUCTIONS[goal]
        )
        return [
            {'role': 'system', 'content': SYSTEM_INSTRUCTIONS},
            {'role': 'user', 'content': prompt}
        ]

    def generate(self, calories, goal='maintenance'):
        """
        One round trip to the model. Returns a validated MealPlan.

        Raises ValidationError for bad input and GenerationFailed for any
        provider error or unusable output.
        """
        try:
            calories = float(calories)
        except (TypeError, ValueError):
            raise ValidationError('السعرات الحرارية يجب أن تكون رقماً')
        if calories <= 0:
            raise ValidationError('السعرات الحرارية يجب أن تكون أكبر من صفر')
        if goal not in GOALS:
            raise ValidationError(f'الهدف غير صالح: {goal}')

        if self.client is None:
            logger.error("Meal plan generation requested but no model client is configured")
            raise GenerationFailed()

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(calories, goal),
                temperature=self.temperature,
                response_format={'type': 'json_object'},
            )
        except Exception as e:
            logger.exception(f"[AI_FLOW_ERROR] Failed to generate meal plan: {e}")
            raise GenerationFailed()

        raw = None
        if getattr(response, 'choices', None):
            raw = response.choices[0].message.content
        if not raw:
            logger.error("[AI_FLOW_ERROR] Received an empty response from the AI model")
            raise GenerationFailed()

        parsed = parse_json_from_llm_response(raw)
        if parsed is None:
            logger.error(f"[AI_FLOW_ERROR] Model returned non-JSON output, preview: {raw[:100]}")
            raise GenerationFailed()

        try:
            plan = MealPlan.model_validate(parsed)
        except SchemaError as e:
            logger.error(f"[AI_FLOW_ERROR] Model output does not match the meal plan schema: {e}")
            raise GenerationFailed()

        logger.info(f"Meal plan generated: {plan.planTitle} ({plan.totalCalories} kcal, target {calories})")
        return plan
