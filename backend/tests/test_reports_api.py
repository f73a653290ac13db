"""
Report CRUD, scoping and backup/restore over HTTP.
"""

import pytest

from reportdesk.models import Report

from conftest import report_payload


def create(client, headers, **kwargs):
    response = client.post('/api/reports', json=report_payload(**kwargs), headers=headers)
    assert response.status_code == 201, response.json
    return response.json['report']


class TestCreateReport:

    def test_totals_computed_server_side(self, client, employee_headers):
        payload = report_payload(total_services="999.99", totalExpenses="1.00", netProfit="5")
        response = client.post('/api/reports', json=payload, headers=employee_headers)
        assert response.status_code == 201
        report = response.json['report']
        assert report['total_services'] == "150.50"
        assert report['total_expenses'] == "40.00"
        assert report['net_profit'] == "110.50"

    def test_line_items_keep_order_and_ids(self, client, employee_headers):
        report = create(client, employee_headers)
        assert [s['id'] for s in report['services']] == ["s1", "s2"]
        assert report['services'][1]['amount'] == "50.50"

    def test_missing_item_id_is_generated(self, client, employee_headers):
        report = create(client, employee_headers, services=[{"name": "Trim", "amount": 10}])
        assert report['services'][0]['id']

    def test_camel_case_payments(self, client, employee_headers):
        report = create(client, employee_headers, onlinePayment=60, cashPayment="50.5")
        assert report['online_payment'] == "60.00"
        assert report['cash_payment'] == "50.50"

    def test_created_by_is_caller(self, client, employee_user, employee_headers):
        report = create(client, employee_headers, created_by=999)
        assert report['created_by'] == employee_user.id
        assert report['created_by_username'] == employee_user.username

    @pytest.mark.parametrize("overrides", [
        {"date": None},
        {"date": "2024-13-01"},
        {"date": "05/01/2024"},
        {"services": [{"name": "Haircut", "amount": -5}]},
        {"services": [{"name": "", "amount": 5}]},
        {"expenses": [{"name": "Rent", "amount": "lots"}]},
        {"services": "Haircut"},
        {"discount": 10},
        {"services": [{"name": "Haircut", "amount": "1e30"}]},
    ])
    def test_invalid_payloads(self, client, employee_headers, overrides):
        payload = report_payload()
        payload.update(overrides)
        response = client.post('/api/reports', json=payload, headers=employee_headers)
        assert response.status_code == 400
        assert 'error' in response.json

    def test_non_object_body(self, client, employee_headers):
        response = client.post('/api/reports', json=[1, 2], headers=employee_headers)
        assert response.status_code == 400

    def test_empty_report_is_allowed(self, client, employee_headers):
        report = create(client, employee_headers, services=[], expenses=[])
        assert report['net_profit'] == "0.00"


class TestScoping:

    def test_employee_sees_only_own_reports(self, client, employee_headers, other_employee_headers):
        create(client, employee_headers)
        create(client, other_employee_headers, date="2024-01-06")

        response = client.get('/api/reports', headers=employee_headers)
        assert response.json['count'] == 1

    def test_employee_cannot_read_others_report(self, client, employee_headers, other_employee_headers):
        report = create(client, other_employee_headers)
        response = client.get(f"/api/reports/{report['id']}", headers=employee_headers)
        assert response.status_code == 403

    def test_manager_sees_all(self, client, manager_headers, employee_headers, other_employee_headers):
        create(client, employee_headers)
        create(client, other_employee_headers)
        assert client.get('/api/reports', headers=manager_headers).json['count'] == 2

    def test_missing_report_is_404(self, client, manager_headers):
        assert client.get('/api/reports/9999', headers=manager_headers).status_code == 404

    def test_list_order_newest_first(self, client, manager_headers):
        create(client, manager_headers, date="2024-01-01")
        create(client, manager_headers, date="2024-03-01")
        create(client, manager_headers, date="2024-02-01")
        dates = [r['date'] for r in client.get('/api/reports', headers=manager_headers).json['reports']]
        assert dates == ["2024-03-01", "2024-02-01", "2024-01-01"]

    def test_date_range(self, client, manager_headers):
        for day in ("2024-01-01", "2024-01-15", "2024-02-01"):
            create(client, manager_headers, date=day)
        response = client.get('/api/reports?start=2024-01-10&end=2024-02-01', headers=manager_headers)
        assert [r['date'] for r in response.json['reports']] == ["2024-02-01", "2024-01-15"]

    def test_inverted_range_is_400(self, client, manager_headers):
        response = client.get('/api/reports?start=2024-02-01&end=2024-01-01', headers=manager_headers)
        assert response.status_code == 400

    def test_by_date(self, client, employee_headers):
        create(client, employee_headers, date="2024-01-05")
        create(client, employee_headers, date="2024-01-05")
        create(client, employee_headers, date="2024-01-06")
        response = client.get('/api/reports/date/2024-01-05', headers=employee_headers)
        assert response.json['count'] == 2

    def test_by_date_invalid(self, client, employee_headers):
        assert client.get('/api/reports/date/yesterday', headers=employee_headers).status_code == 400


class TestUpdateAndDelete:

    def test_put_replaces_everything(self, client, manager_headers):
        report = create(client, manager_headers)
        response = client.put(f"/api/reports/{report['id']}", json=report_payload(
            date="2024-02-02",
            services=[{"id": "n1", "name": "Shave", "amount": 20}],
            expenses=[],
        ), headers=manager_headers)
        assert response.status_code == 200
        updated = response.json['report']
        assert updated['date'] == "2024-02-02"
        assert [s['name'] for s in updated['services']] == ["Shave"]
        assert updated['expenses'] == []
        assert updated['net_profit'] == "20.00"
        assert updated['updated_at'] is not None

    def test_put_invalid_keeps_original(self, client, manager_headers):
        report = create(client, manager_headers)
        response = client.put(f"/api/reports/{report['id']}", json={"date": "bad"}, headers=manager_headers)
        assert response.status_code == 400
        fetched = client.get(f"/api/reports/{report['id']}", headers=manager_headers).json['report']
        assert fetched['net_profit'] == report['net_profit']

    def test_put_missing_is_404(self, client, manager_headers):
        response = client.put('/api/reports/9999', json=report_payload(), headers=manager_headers)
        assert response.status_code == 404

    def test_delete(self, client, admin_headers, db_session):
        report = create(client, admin_headers)
        response = client.delete(f"/api/reports/{report['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json['report']['id'] == report['id']
        assert db_session.get(Report, report['id']) is None
        assert client.delete(f"/api/reports/{report['id']}", headers=admin_headers).status_code == 404


class TestBackupRestore:

    def test_export(self, client, admin_headers):
        create(client, admin_headers)
        response = client.get('/api/reports/backup', headers=admin_headers)
        assert response.status_code == 200
        assert response.json['version'] == "1.0"
        assert len(response.json['reports']) == 1
        assert response.json['timestamp'].endswith("Z")

    def test_restore_round_trip_with_errors(self, client, admin_user, admin_headers):
        create(client, admin_headers)
        backup = client.get('/api/reports/backup', headers=admin_headers).json
        backup['reports'].append({"date": "not-a-date"})

        response = client.post('/api/reports/bulk-restore', json=backup, headers=admin_headers)
        assert response.status_code == 200
        body = response.json
        assert body['success'] is True
        assert body['restored'] == 1
        assert body['total'] == 2
        assert body['errors'][0]['index'] == 1
        assert body['errors'][0]['date'] == "not-a-date"

        reports = client.get('/api/reports', headers=admin_headers).json['reports']
        assert len(reports) == 2
        assert all(r['created_by'] == admin_user.id for r in reports)
        assert reports[0]['net_profit'] == reports[1]['net_profit']

    def test_restore_oversized_amount_is_per_entry_error(self, client, admin_headers):
        backup = [
            report_payload(),
            report_payload(services=[{"name": "Haircut", "amount": "1e30"}]),
        ]
        response = client.post('/api/reports/bulk-restore', json=backup, headers=admin_headers)
        assert response.status_code == 200
        body = response.json
        assert body['restored'] == 1
        assert body['total'] == 2
        assert len(body['errors']) == 1
        assert body['errors'][0]['index'] == 1
        assert "too large" in body['errors'][0]['error']

    def test_restore_bare_list(self, client, admin_headers):
        response = client.post('/api/reports/bulk-restore', json=[report_payload()], headers=admin_headers)
        assert response.json['restored'] == 1

    @pytest.mark.parametrize("body", [[], {"reports": []}, {"reports": "x"}, {}])
    def test_restore_rejects_empty_or_malformed(self, client, admin_headers, body):
        response = client.post('/api/reports/bulk-restore', json=body, headers=admin_headers)
        assert response.status_code == 400
