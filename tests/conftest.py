import json
from datetime import datetime
from types import SimpleNamespace

import pytest

from gympass import create_app, db

ADMIN_HEADERS = {'X-Admin-Key': 'test-admin-key'}

NOW = datetime(2024, 3, 15, 10, 0, 0)

PRICING = {
    'dailyIron': 5000,
    'weeklyIron': 20000,
    'monthlyIron': 50000,
    'dailyFitness': 6000,
    'weeklyFitness': 25000,
    'monthlyFitness': 60000,
}


def make_meal(name, calories):
    return {
        'meal': name,
        'description': f'وصف {name}',
        'calories': calories,
        'alternatives': f'بديل {name}',
    }


SAMPLE_PLAN = {
    'planTitle': 'خطة تضخيم - 3000 سعر حراري',
    'breakfast': make_meal('بيض مع خبز', 600),
    'lunch': make_meal('تشريب دجاج', 1100),
    'dinner': make_meal('شوربة عدس', 800),
    'snacks': [make_meal('تمر ولبن', 300), make_meal('حمص', 200)],
    'totalCalories': 3000,
}


class FakeLLMClient:
    """Stands in for openai.OpenAI: client.chat.completions.create(...)"""

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def llm():
    return FakeLLMClient(content=json.dumps(SAMPLE_PLAN, ensure_ascii=False))


@pytest.fixture
def app(llm):
    app = create_app('testing', llm_client=llm)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """App context for tests that call services directly"""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def services(ctx):
    return ctx.extensions['gympass']


@pytest.fixture
def owner(services):
    return services['accounts'].signup(
        email='owner@gym.iq',
        password='secret123',
        promo_code='GIFT',
        pricing=PRICING,
        now=NOW
    )


@pytest.fixture
def other_owner(services):
    return services['accounts'].signup(
        email='other@gym.iq',
        password='secret123',
        promo_code='GIFT',
        now=NOW
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def owner_client(client):
    """Test client logged in as a freshly signed-up gym owner"""
    response = client.post('/auth/signup', json=dict(
        email='owner@gym.iq',
        password='secret123',
        promo_code='GIFT',
        **PRICING
    ))
    assert response.status_code == 201, response.get_json()
    return client
