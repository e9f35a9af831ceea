"""HTTP-level tests: status codes and error payload shapes."""

from conftest import customer


def _create_product(client, stock=5):
    response = client.post('/api/products', json={
        'title': 'Product P',
        'base_price_cents': 150,
        'lowest_selling_price_cents': 100,
        'stock_quantity': stock,
    })
    assert response.status_code == 201
    return response.json['product']


def _create_employee(client, phone='9876500001'):
    response = client.post('/api/employees', json={'full_name': 'Asha Rao', 'phone_number': phone})
    assert response.status_code == 201
    return response.json['employee']


def test_health(client, db_session):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.json['status'] == 'healthy'
    assert response.json['checks']['database']['status'] == 'healthy'


def test_product_crud(client, db_session):
    product = _create_product(client)
    assert product['stock_quantity'] == 5

    response = client.patch(f"/api/products/{product['id']}", json={'title': 'Renamed'})
    assert response.status_code == 200
    assert response.json['product']['title'] == 'Renamed'

    response = client.patch(f"/api/products/{product['id']}", json={'stock_quantity': 99})
    assert response.status_code == 400
    assert response.json['error'] == 'ValidationError'

    response = client.get(f"/api/products/{product['id']}")
    assert response.status_code == 200
    assert response.json['custody']['units_in_circulation'] == 5

    response = client.get('/api/products?limit=1')
    assert response.json['pagination']['total_count'] == 1


def test_product_not_found(client, db_session):
    response = client.get('/api/products/999')
    assert response.status_code == 404
    assert response.json['error'] == 'NotFound'


def test_restock_route(client, db_session):
    product = _create_product(client)
    response = client.post(f"/api/products/{product['id']}/restock", json={'quantity': 3})
    assert response.status_code == 200
    assert response.json['product']['stock_quantity'] == 8

    response = client.post(f"/api/products/{product['id']}/restock", json={'quantity': '2.5'})
    assert response.status_code == 400


def test_duplicate_employee_phone(client, db_session):
    _create_employee(client)
    response = client.post('/api/employees', json={'full_name': 'Other', 'phone_number': '9876500001'})
    assert response.status_code == 409
    assert response.json['error'] == 'Conflict'


def test_stock_request_flow_over_http(client, db_session):
    product = _create_product(client)
    employee = _create_employee(client)

    response = client.post('/api/requests/stock', json={
        'employee_id': employee['id'],
        'product_id': product['id'],
        'quantity': 3,
        'reason': 'Weekend fair',
    })
    assert response.status_code == 201
    request_id = response.json['request']['id']

    response = client.post(
        f'/api/requests/stock/{request_id}/approve',
        headers={'X-Actor-Id': 'manager-7'},
    )
    assert response.status_code == 200
    assert response.json['request']['status'] == 'Approved'
    assert response.json['request']['processed_by'] == 'manager-7'

    response = client.post(f'/api/requests/stock/{request_id}/approve')
    assert response.status_code == 409
    assert response.json['error'] == 'InvalidStateTransition'

    response = client.get(f"/api/employees/{employee['id']}/products")
    assert response.json['assignments'][0]['quantity'] == 3

    response = client.get('/api/requests/stock?status=Approved')
    assert [r['id'] for r in response.json['requests']] == [request_id]


def test_unknown_request_kind(client, db_session):
    response = client.post('/api/requests/gift', json={'employee_id': 1})
    assert response.status_code == 400
    assert response.json['error'] == 'ValidationError'


def test_sale_over_http(client, db_session):
    product = _create_product(client)
    employee = _create_employee(client)
    response = client.post(f"/api/employees/{employee['id']}/products", json={
        'product_id': product['id'],
        'quantity': 3,
    })
    assert response.status_code == 201

    response = client.post('/api/sales', json={
        'employee_id': employee['id'],
        'items': [{'product_id': product['id'], 'product_title': 'Product P', 'quantity': 5, 'price_per_unit_cents': 100}],
        'customer': customer(),
        'payment_method': 'Cash',
    })
    assert response.status_code == 409
    assert response.json['error'] == 'InsufficientAssignedStock'
    assert response.json['details']['items'][0]['product_id'] == product['id']

    response = client.post('/api/sales', json={
        'employee_id': employee['id'],
        'items': [{'product_id': product['id'], 'product_title': 'Product P', 'quantity': 3, 'price_per_unit_cents': 100}],
        'customer': customer(),
        'payment_method': 'Cash',
    })
    assert response.status_code == 201
    assert response.json['holdings'] == {'cash_cents': 300, 'online_cents': 0, 'total_cents': 300}
    sale_id = response.json['sale']['id']

    response = client.get(f'/api/sales/{sale_id}')
    assert response.status_code == 200
    assert response.json['sale']['total_amount_cents'] == 300

    response = client.get(f"/api/sales?employee_id={employee['id']}")
    assert response.json['pagination']['total_count'] == 1


def test_money_request_over_http(client, db_session):
    employee = _create_employee(client)
    response = client.post('/api/requests/money', json={
        'employee_id': employee['id'],
        'amount_cents': 500,
        'method': 'Cash',
    })
    assert response.status_code == 201
    request_id = response.json['request']['id']

    response = client.post(f'/api/requests/money/{request_id}/approve')
    assert response.status_code == 409
    assert response.json['error'] == 'InsufficientHoldings'

    response = client.post(f'/api/requests/money/{request_id}/reject', json={'reason': 'Nothing to settle'})
    assert response.status_code == 200
    assert response.json['request']['status'] == 'Rejected'


def test_unassign_route(client, db_session):
    product = _create_product(client)
    employee = _create_employee(client)
    client.post(f"/api/employees/{employee['id']}/products", json={'product_id': product['id'], 'quantity': 3})

    response = client.delete(f"/api/employees/{employee['id']}/products/{product['id']}?quantity=1")
    assert response.status_code == 200
    assert response.json['custody']['assignments'][0]['quantity'] == 2

    response = client.delete(
        f"/api/employees/{employee['id']}/products/{product['id']}?return_to_stock=false"
    )
    assert response.status_code == 200
    assert response.json['custody']['assignments'] == []

    response = client.get(f"/api/products/{product['id']}")
    assert response.json['product']['stock_quantity'] == 3

    response = client.get(f"/api/employees/{employee['id']}/events?event_type=assignment.written_off")
    assert len(response.json['events']) == 1


def test_reports(client, db_session):
    _create_product(client)
    response = client.get('/api/reports/dashboard')
    assert response.status_code == 200
    assert response.json['stock']['warehouse_units'] == 5

    response = client.get('/api/reports/reconciliation')
    assert response.status_code == 200
    assert response.json['ok'] is True

    response = client.get('/api/reports/dashboard?start=not-a-date')
    assert response.status_code == 400
    assert response.json['error'] == 'ValidationError'
    assert response.json['details']['field'] == 'start'

    response = client.get('/api/sales?start=2026-03-01&end=2026-02-01')
    assert response.status_code == 400
    assert response.json['message'] == 'start must be before end'
