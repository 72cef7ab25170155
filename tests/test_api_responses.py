from __future__ import annotations

from conftest import create_form, publish


def _submit(client, form_id, data):
    return client.post(f"/api/forms/{form_id}/responses", json={"responseData": data})


def test_draft_form_rejects_submissions_even_when_valid(client, auth):
    form = create_form(client, auth)
    res = _submit(client, form["id"], {"f1": "Alice"})
    assert res.status_code == 403
    assert res.json()["message"] == "This form is not accepting responses"


def test_unknown_form_is_not_found(client):
    assert _submit(client, "nope", {"f1": "x"}).status_code == 404


def test_missing_required_field_then_accept(client, auth):
    form = create_form(client, auth)
    publish(client, auth, form["id"])

    res = _submit(client, form["id"], {})
    assert res.status_code == 400
    assert "Name" in res.json()["message"]

    res = _submit(client, form["id"], {"f1": "Alice"})
    assert res.status_code == 201
    assert res.json()["responseData"] == {"f1": "Alice"}

    listed = client.get(f"/api/forms/{form['id']}/responses", headers=auth).json()
    assert [r["responseData"] for r in listed] == [{"f1": "Alice"}]


def test_response_data_must_be_object(client, auth):
    form = create_form(client, auth)
    publish(client, auth, form["id"])
    res = client.post(f"/api/forms/{form['id']}/responses", json={"responseData": "x"})
    assert res.status_code == 400


def test_submit_by_share_token(client, auth):
    form = create_form(client, auth)
    token = publish(client, auth, form["id"])["shareableUrl"]
    res = client.post(f"/api/public/forms/{token}/responses", json={"responseData": {"f1": "Bo"}})
    assert res.status_code == 201
    assert res.json()["formId"] == form["id"]


def test_get_single_response(client, auth):
    form = create_form(client, auth)
    publish(client, auth, form["id"])
    created = _submit(client, form["id"], {"f1": "Alice"}).json()
    res = client.get(f"/api/forms/{form['id']}/responses/{created['id']}", headers=auth)
    assert res.status_code == 200
    assert res.json()["responseData"] == {"f1": "Alice"}
    assert client.get(f"/api/forms/{form['id']}/responses/missing", headers=auth).status_code == 404


def test_analytics_endpoint(client, auth):
    form = create_form(client, auth)
    publish(client, auth, form["id"])
    for name, answer in [("A", "Yes"), ("B", "Yes"), ("C", "No")]:
        assert _submit(client, form["id"], {"f1": name, "f2": answer}).status_code == 201

    res = client.get(f"/api/forms/{form['id']}/analytics", headers=auth)
    assert res.status_code == 200
    data = res.json()
    assert data["formTitle"] == "Feedback"
    assert data["responseCount"] == 3
    names, choice = data["fieldStatistics"]
    assert sorted(names["responses"]) == ["A", "B", "C"]
    assert choice["distribution"] == {"Yes": 2, "No": 1}
    assert choice["distributionPercentages"] == {"Yes": 66.67, "No": 33.33}


def test_prevent_duplicates(client, auth):
    form = create_form(
        client,
        auth,
        preventDuplicates=True,
        fields=[{"id": "e", "type": "email", "label": "Email", "required": True}],
    )
    publish(client, auth, form["id"])
    assert _submit(client, form["id"], {"e": "ann@example.com"}).status_code == 201
    res = _submit(client, form["id"], {"e": "ANN@example.com"})
    assert res.status_code == 409
    assert _submit(client, form["id"], {"e": "bob@example.com"}).status_code == 201


def test_deleting_form_removes_its_responses(client, auth):
    form = create_form(client, auth)
    publish(client, auth, form["id"])
    created = _submit(client, form["id"], {"f1": "Alice"}).json()
    client.delete(f"/api/forms/{form['id']}", headers=auth)
    assert client.app.state.storage.responses.get_response(created["id"]) is None


def _rating_form(client, auth):
    form = create_form(
        client,
        auth,
        fields=[{"id": "s", "type": "rating", "label": "Score", "minRating": 1, "maxRating": 5}],
    )
    publish(client, auth, form["id"])
    return form


def test_analytics_survives_non_numeric_ratings(client, auth):
    form = _rating_form(client, auth)
    for value in ["NaN", "1e999", 4]:
        assert _submit(client, form["id"], {"s": value}).status_code == 201

    res = client.get(f"/api/forms/{form['id']}/analytics", headers=auth)
    assert res.status_code == 200
    stats = res.json()["fieldStatistics"][0]
    assert stats["responseCount"] == 3
    assert stats["average"] == 4


def test_oversized_integer_is_rejected_as_bad_input(client, auth):
    form = _rating_form(client, auth)
    body = '{"responseData": {"s": 1' + "0" * 400 + "}}"
    res = client.post(
        f"/api/forms/{form['id']}/responses",
        content=body,
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 400
    assert client.get(f"/api/forms/{form['id']}/analytics", headers=auth).status_code == 200


def test_nan_literal_is_rejected(client, auth):
    form = _rating_form(client, auth)
    res = client.post(
        f"/api/forms/{form['id']}/responses",
        content='{"responseData": {"s": NaN}}',
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 400
