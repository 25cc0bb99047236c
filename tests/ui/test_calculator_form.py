def test_form_preselects_default_year(api_client):
    response = api_client.get("/ui/")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert '<option value="2024-2025" selected>' in response.text
    assert '<option value="2020-2021" >' in response.text
    assert 'id="result"' not in response.text


def test_form_renders_breakdown(api_client):
    response = api_client.post("/ui/calculate", data={"year": "2020-2021", "income": "$96,200"})
    assert response.status_code == 200
    html = response.text
    assert '<strong id="total-tax">$21,732.00</strong>' in html
    assert "After-tax income: $74,468.00" in html
    assert "Effective rate: 22.59%" in html
    assert "<td>32.5% tax rate</td>" in html
    assert "<td>$16,639.68</td>" in html
    assert '<option value="2020-2021" selected>' in html


def test_form_zero_income_has_no_rows(api_client):
    response = api_client.post("/ui/calculate", data={"year": "2020-2021", "income": "0"})
    assert response.status_code == 200
    assert '<strong id="total-tax">$0.00</strong>' in response.text
    assert "<td>Tax-free threshold</td>" not in response.text


def test_form_rejects_negative_income(api_client):
    response = api_client.post("/ui/calculate", data={"year": "2020-2021", "income": "-10"})
    assert response.status_code == 400
    assert "Income must be a positive number." in response.text
    assert 'value="-10"' in response.text


def test_form_rejects_non_numeric_income(api_client):
    response = api_client.post("/ui/calculate", data={"year": "2020-2021", "income": "lots"})
    assert response.status_code == 400
    assert "Please enter a valid income amount (numbers only)." in response.text


def test_form_requires_both_fields(api_client):
    response = api_client.post("/ui/calculate", data={})
    assert response.status_code == 400
    assert "Please enter your taxable income." in response.text
    assert "Please choose an income year." in response.text


def test_form_reports_unsupported_year(api_client):
    response = api_client.post("/ui/calculate", data={"year": "1999-2000", "income": "50000"})
    assert response.status_code == 400
    assert 'id="year-error"' in response.text
    assert "Tax year 1999-2000 is not supported." in response.text
    assert 'id="result"' not in response.text
