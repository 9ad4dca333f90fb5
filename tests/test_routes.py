import pytest

from gympass import create_app, db
from gympass.config import TestingConfig, config

from conftest import ADMIN_HEADERS, PRICING, SAMPLE_PLAN

MEMBER_JSON = {
    'name': 'علي حسن',
    'phone': '07701234567',
    'period': 'Monthly',
    'classes': ['Iron', 'Fitness'],
    'gender': 'male',
    'weight': 70,
    'height': 170,
    'age': 25,
    'amount_paid': 30000,
}


def add_member(client, **overrides):
    response = client.post('/members/', json=dict(MEMBER_JSON, **overrides))
    assert response.status_code == 201, response.get_json()
    return response.get_json()['member']


class TestAuth:
    def test_signup_logs_in(self, owner_client):
        data = owner_client.get('/auth/me').get_json()
        assert data['owner']['email'] == 'owner@gym.iq'
        assert data['owner']['subscription_type'] == 'gift'
        assert data['owner']['status'] == 'active'
        assert data['owner']['pricing']['monthlyIron'] == 50000

    def test_signup_validation(self, client):
        response = client.post('/auth/signup', json={'email': 'not-an-email', 'password': '1'})
        assert response.status_code == 400
        errors = response.get_json()['errors']
        assert {'email', 'password', 'promo_code'} <= set(errors)

    def test_signup_with_unknown_code(self, client):
        response = client.post('/auth/signup', json={
            'email': 'a@gym.iq', 'password': 'secret123', 'promo_code': 'NOPE'
        })
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_login_logout(self, owner_client):
        assert owner_client.post('/auth/logout').status_code == 200
        assert owner_client.get('/members/').status_code == 401

        bad = owner_client.post('/auth/login', json={'email': 'owner@gym.iq', 'password': 'wrong'})
        assert bad.status_code == 401

        good = owner_client.post('/auth/login', json={'email': 'OWNER@gym.iq', 'password': 'secret123'})
        assert good.status_code == 200
        assert owner_client.get('/members/').status_code == 200

    def test_anonymous_is_refused(self, client):
        response = client.get('/members/')
        assert response.status_code == 401
        assert response.get_json()['success'] is False


class TestMembers:
    def test_member_lifecycle(self, owner_client, llm):
        member = add_member(owner_client)
        assert member['subscription_type'] == 'Monthly Iron & Fitness'
        assert member['subscription_price'] == 110000
        assert member['debt'] == 80000
        assert member['daily_calories'] == 1643
        assert member['status'] == 'Active'

        listing = owner_client.get('/members/').get_json()
        assert [m['id'] for m in listing['members']] == [member['id']]

        renewed = owner_client.post(f"/members/{member['id']}/renew",
                                    json={'period': 'Weekly', 'classes': ['Iron']}).get_json()
        assert renewed['member']['subscription_type'] == 'Weekly Iron'
        assert renewed['member']['debt'] == 80000

        plan = owner_client.post(f"/members/{member['id']}/meal-plan", json={'goal': 'bulking'})
        assert plan.status_code == 200
        assert plan.get_json()['meal_plan']['planTitle'] == SAMPLE_PLAN['planTitle']
        assert '1643' in llm.calls[0]['messages'][1]['content']

        edited = owner_client.put(f"/members/{member['id']}", json={'weight': 80, 'height': 180, 'age': 30})
        assert edited.get_json()['member']['daily_calories'] == 1780

        assert owner_client.delete(f"/members/{member['id']}").status_code == 200
        assert owner_client.get(f"/members/{member['id']}").status_code == 404

    def test_search_and_status_filter(self, owner_client):
        ali = add_member(owner_client)
        add_member(owner_client, name='زينب', phone='07809999999')

        found = owner_client.get('/members/?search=0780').get_json()['members']
        assert [m['name'] for m in found] == ['زينب']

        expired = owner_client.get('/members/?status=Expired').get_json()
        assert expired['count'] == 0
        active = owner_client.get('/members/?status=Active').get_json()
        assert ali['id'] in [m['id'] for m in active['members']]

    def test_invalid_member(self, owner_client):
        response = owner_client.post('/members/', json=dict(MEMBER_JSON, name='', weight=500, classes=['Yoga']))
        assert response.status_code == 400
        assert {'name', 'weight', 'classes'} <= set(response.get_json()['errors'])

    def test_payment_clamped_and_idempotent(self, owner_client):
        member = add_member(owner_client)
        url = f"/members/{member['id']}/payments"

        first = owner_client.post(url, json={'amount': 200000}, headers={'Idempotency-Key': 'receipt-17'})
        assert first.status_code == 201
        body = first.get_json()
        assert body['payment']['applied_amount'] == 80000
        assert body['member']['debt'] == 0

        replay = owner_client.post(url, json={'amount': 200000}, headers={'Idempotency-Key': 'receipt-17'})
        assert replay.status_code == 200
        assert replay.get_json()['payment']['id'] == body['payment']['id']

        detail = owner_client.get(f"/members/{member['id']}").get_json()
        assert detail['member']['amount_paid'] == 110000
        assert len(detail['payments']) == 1

    def test_payment_must_be_positive(self, owner_client):
        member = add_member(owner_client)
        response = owner_client.post(f"/members/{member['id']}/payments", json={'amount': 0})
        assert response.status_code == 400

    def test_meal_plan_needs_calories(self, owner_client):
        response = owner_client.post('/members/', json={'name': 'زينب', 'period': 'Daily', 'classes': ['Iron']})
        member = response.get_json()['member']
        assert member['daily_calories'] is None
        response = owner_client.post(f"/members/{member['id']}/meal-plan", json={'goal': 'maintenance'})
        assert response.status_code == 400

    def test_meal_plan_generation_failure(self, owner_client, llm):
        member = add_member(owner_client)
        llm.content = 'sorry, I cannot help with that'
        response = owner_client.post(f"/members/{member['id']}/meal-plan", json={})
        assert response.status_code == 502
        assert owner_client.get(f"/members/{member['id']}").get_json()['member']['meal_plan'] is None

    def test_other_owner_cannot_touch_member(self, app, owner_client):
        member = add_member(owner_client)

        intruder = app.test_client()
        intruder.post('/auth/signup', json={'email': 'other@gym.iq', 'password': 'secret123', 'promo_code': 'GIFT'})

        assert intruder.get(f"/members/{member['id']}").status_code == 403
        assert intruder.post(f"/members/{member['id']}/payments", json={'amount': 10}).status_code == 403
        assert intruder.delete(f"/members/{member['id']}").status_code == 403
        assert intruder.get('/members/').get_json()['count'] == 0

    def test_public_member_card(self, owner_client):
        member = add_member(owner_client)
        owner_client.post(f"/members/{member['id']}/meal-plan", json={})
        owner_client.post('/auth/logout')

        card = owner_client.get(f"/public/members/{member['public_token']}").get_json()['member']
        assert card['name'] == MEMBER_JSON['name']
        assert card['meal_plan']['planTitle'] == SAMPLE_PLAN['planTitle']
        assert 'phone' not in card
        assert 'debt' not in card
        assert 'amount_paid' not in card

    def test_public_card_is_not_keyed_by_id(self, owner_client):
        member = add_member(owner_client)
        owner_client.post('/auth/logout')

        assert len(member['public_token']) == 32
        assert owner_client.get(f"/public/members/{member['id']}").status_code == 404
        assert owner_client.get('/public/members/' + '0' * 32).status_code == 404


class TestSettingsAndDashboard:
    def test_pricing(self, owner_client):
        response = owner_client.put('/settings/pricing', json={'dailyIron': 7000})
        assert response.status_code == 200
        pricing = response.get_json()['pricing']
        assert pricing['dailyIron'] == 7000
        assert pricing['monthlyFitness'] == PRICING['monthlyFitness']

        assert owner_client.put('/settings/pricing', json={'dailyIron': -1}).status_code == 400

    def test_profit_summary(self, owner_client):
        member = add_member(owner_client)
        add_member(owner_client, amount_paid=0, period='Daily', classes=['Iron'])
        owner_client.post(f"/members/{member['id']}/payments", json={'amount': 20000})

        summary = owner_client.get('/dashboard/').get_json()['summary']
        assert summary['total_members'] == 2
        assert summary['active_members'] == 2
        assert summary['total_collected'] == 50000
        assert summary['total_debt'] == 60000 + 5000
        assert summary['collected_this_month'] == 20000


class TestSubscriptionGate:
    def test_expired_owner_is_logged_out(self, app, owner_client):
        with app.app_context():
            from gympass.models import GymOwner
            owner_id = GymOwner.query.filter_by(email='owner@gym.iq').one().id

        response = owner_client.post(f'/admin/users/{owner_id}/subscription',
                                     json={'action': 'deactivate'}, headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.get_json()['user']['status'] == 'expired'

        gated = owner_client.get('/members/')
        assert gated.status_code == 401
        assert gated.get_json()['error'] == 'انتهى اشتراكك. يرجى تجديد الاشتراك للمتابعة.'

        # session is gone, not just refused once
        assert owner_client.get('/auth/me').status_code == 401

        login = owner_client.post('/auth/login', json={'email': 'owner@gym.iq', 'password': 'secret123'})
        assert login.status_code == 401

        owner_client.post(f'/admin/users/{owner_id}/subscription',
                          json={'action': 'monthly'}, headers=ADMIN_HEADERS)
        login = owner_client.post('/auth/login', json={'email': 'owner@gym.iq', 'password': 'secret123'})
        assert login.status_code == 200


class CSRFTestingConfig(TestingConfig):
    WTF_CSRF_ENABLED = True


@pytest.fixture
def csrf_client(monkeypatch, llm):
    monkeypatch.setitem(config, 'csrf_testing', CSRFTestingConfig)
    app = create_app('csrf_testing', llm_client=llm)
    with app.app_context():
        db.create_all()
    yield app.test_client()
    with app.app_context():
        db.session.remove()
        db.drop_all()


def test_csrf_token_required_for_session_endpoints(csrf_client):
    signup = {'email': 'owner@gym.iq', 'password': 'secret123', 'promo_code': 'GIFT'}

    assert csrf_client.post('/auth/signup', json=signup).status_code == 400

    token = csrf_client.get('/auth/csrf-token').get_json()['csrf_token']
    response = csrf_client.post('/auth/signup', json=signup, headers={'X-CSRFToken': token})
    assert response.status_code == 201


def test_admin_api_needs_no_csrf_token(csrf_client):
    response = csrf_client.post('/admin/promo-codes', json={'code': 'x1', 'type': 'monthly'},
                                headers=ADMIN_HEADERS)
    assert response.status_code == 201
