from __future__ import annotations

import csv
import io

from formsaas.fields import FieldType

SURVEY = {
    "title": "Survey",
    "fieldNames": ["email", "age"],
    "fieldTypes": ["email", "number"],
    "template": "",
}


def _create_survey(client, **overrides) -> None:
    response = client.post("/form/new", data={**SURVEY, **overrides}, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"


def _only_form(app, tenant_id):
    forms = app.state.storage.forms.list_forms_by_owner(tenant_id)
    assert len(forms) == 1
    return forms[0]


def test_healthz(client) -> None:
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_dashboard_requires_login(client) -> None:
    response = client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert client.get("/api/dashboard/forms").status_code == 401


def test_scenario_a_create_render_and_submit(app, acme, client) -> None:
    owner_client, owner_id = acme
    _create_survey(owner_client)
    form = _only_form(app, owner_id)
    assert [(field.name, field.type) for field in form.fields] == [
        ("email", FieldType.EMAIL),
        ("age", FieldType.NUMBER),
    ]
    assert form.template == "default"
    assert form.allow_file is False

    page = client.get(f"/form/{form.id}")
    assert page.status_code == 200
    assert 'type="email" name="email"' in page.text
    assert 'type="number" name="age"' in page.text
    assert 'name="attachment"' not in page.text

    response = client.post(f"/form/{form.id}", data={"email": "a@b.com", "age": "30"})
    assert response.status_code == 200
    assert "Thank you" in response.text
    submissions = app.state.storage.submissions.list_submissions(form.id)
    assert len(submissions) == 1
    assert submissions[0].data == {"email": "a@b.com", "age": "30"}
    assert submissions[0].file_path is None


def test_scenario_b_extra_keys_dropped(app, acme, client) -> None:
    owner_client, owner_id = acme
    _create_survey(owner_client)
    form = _only_form(app, owner_id)
    client.post(f"/form/{form.id}", data={"email": "x", "age": "1", "spam": "y"})
    (submission,) = app.state.storage.submissions.list_submissions(form.id)
    assert submission.data == {"email": "x", "age": "1"}


def test_scenario_c_edit_by_non_owner_is_refused(app, acme, globex) -> None:
    owner_client, owner_id = acme
    other_client, _ = globex
    _create_survey(owner_client)
    form = _only_form(app, owner_id)

    response = other_client.post(
        f"/form/edit/{form.id}", data={"title": "Hijacked", "fieldNames": "x"}
    )
    assert response.status_code == 403
    assert response.text == "Access refused"
    assert app.state.storage.forms.get_form(form.id) == form
    assert other_client.get(f"/form/edit/{form.id}").status_code == 403
    assert other_client.get(f"/form/submissions/{form.id}").status_code == 403
    assert other_client.get(f"/form/submissions/{form.id}/export").status_code == 403
    assert other_client.get(f"/api/forms/{form.id}/submissions").status_code == 403


def test_scenario_d_create_without_title(app, acme) -> None:
    owner_client, owner_id = acme
    response = owner_client.post("/form/new", data={**SURVEY, "title": ""})
    assert response.status_code == 200
    assert "Title is required." in response.text
    assert 'value="email"' in response.text
    assert app.state.storage.forms.list_forms_by_owner(owner_id) == []


def test_owner_edit_keeps_identity(app, acme) -> None:
    owner_client, owner_id = acme
    _create_survey(owner_client)
    form = _only_form(app, owner_id)
    response = owner_client.post(
        f"/form/edit/{form.id}",
        data={"title": "Survey v2", "fieldNames": "comment", "allowFile": "on", "template": "card"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    updated = app.state.storage.forms.get_form(form.id)
    assert updated.title == "Survey v2"
    assert updated.field_names == ["comment"]
    assert updated.allow_file is True
    assert updated.template == "card"
    assert (updated.id, updated.owner_tenant_id, updated.created_at) == (
        form.id,
        form.owner_tenant_id,
        form.created_at,
    )


def test_owner_edit_with_empty_title_rerenders(app, acme) -> None:
    owner_client, owner_id = acme
    _create_survey(owner_client)
    form = _only_form(app, owner_id)
    response = owner_client.post(f"/form/edit/{form.id}", data={"title": "", "fieldNames": "x"})
    assert response.status_code == 200
    assert "Title is required." in response.text
    assert app.state.storage.forms.get_form(form.id).title == "Survey"


def test_unknown_form_is_not_found(client, acme) -> None:
    owner_client, _ = acme
    assert client.get("/form/does-not-exist").status_code == 404
    assert client.post("/form/does-not-exist", data={"a": "b"}).status_code == 404
    assert owner_client.get("/form/edit/does-not-exist").status_code == 404


def test_submission_with_attachment_and_download(app, acme, client) -> None:
    owner_client, owner_id = acme
    _create_survey(owner_client, allowFile="on")
    form = _only_form(app, owner_id)
    assert 'name="attachment"' in client.get(f"/form/{form.id}").text

    response = client.post(
        f"/form/{form.id}",
        data={"email": "a@b.com"},
        files={"attachment": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert response.status_code == 200
    (submission,) = app.state.storage.submissions.list_submissions(form.id)
    assert submission.data == {"email": "a@b.com", "age": ""}
    assert submission.file_path.startswith("/uploads/")

    download = client.get(submission.file_path)
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4"
    assert client.get("/uploads/nothing-here.txt").status_code == 404


def test_submissions_page_and_export(app, acme, client) -> None:
    owner_client, owner_id = acme
    _create_survey(owner_client)
    form = _only_form(app, owner_id)
    client.post(f"/form/{form.id}", data={"email": "a@b.com", "age": "30"})
    client.post(f"/form/{form.id}", data={"email": "c@d.com"})

    page = owner_client.get(f"/form/submissions/{form.id}")
    assert page.status_code == 200
    assert "a@b.com" in page.text and "c@d.com" in page.text

    export = owner_client.get(f"/form/submissions/{form.id}/export?format=csv")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(export.text)))
    assert rows[0] == ["email", "age", "file_path", "submitted_at"]
    assert sorted(row[:2] for row in rows[1:]) == [["a@b.com", "30"], ["c@d.com", ""]]

    tsv = owner_client.get(f"/form/submissions/{form.id}/export?format=tsv")
    assert tsv.text.splitlines()[0] == "email\tage\tfile_path\tsubmitted_at"


def test_directory_and_dashboard_views(app, acme, globex, client) -> None:
    owner_client, owner_id = acme
    other_client, other_id = globex
    _create_survey(owner_client)
    _create_survey(other_client, title="Feedback")

    index = client.get("/")
    assert "Acme Corp" in index.text and "Globex" in index.text
    assert "Survey" in index.text and "Feedback" in index.text

    dashboard = owner_client.get("/dashboard")
    assert "Survey" in dashboard.text
    assert "Feedback" not in dashboard.text

    public = client.get("/api/forms").json()
    assert {item["company"]["company_name"] for item in public} == {"Acme Corp", "Globex"}
    owned = owner_client.get("/api/dashboard/forms").json()
    assert [item["owner_tenant_id"] for item in owned] == [owner_id]


def test_api_submissions_for_owner(app, acme, client) -> None:
    owner_client, owner_id = acme
    _create_survey(owner_client)
    form = _only_form(app, owner_id)
    client.post(f"/form/{form.id}", data={"email": "a@b.com", "age": "3"})
    items = owner_client.get(f"/api/forms/{form.id}/submissions").json()
    assert len(items) == 1
    assert items[0]["data"] == {"email": "a@b.com", "age": "3"}
    assert items[0]["file_path"] is None


def test_storage_failure_is_a_generic_server_error(app, client, monkeypatch) -> None:
    from formsaas.errors import StorageFailure

    def broken() -> list:
        raise StorageFailure("database is locked")

    monkeypatch.setattr(app.state.storage.forms, "list_forms", broken)
    response = client.get("/")
    assert response.status_code == 500
    assert response.text == "Server error"
    api = client.get("/api/forms")
    assert api.status_code == 500
    assert api.json() == {"detail": "Server error"}


def test_field_named_like_the_file_input_keeps_its_text(app, acme, client) -> None:
    owner_client, owner_id = acme
    _create_survey(
        owner_client,
        title="Claim",
        fieldNames=["name", "attachment"],
        fieldTypes=["text", "text"],
        allowFile="on",
    )
    form = _only_form(app, owner_id)
    response = client.post(
        f"/form/{form.id}",
        data={"name": "Ann", "attachment": "see file"},
        files={"attachment": ("a.txt", b"receipt", "text/plain")},
    )
    assert response.status_code == 200
    (submission,) = app.state.storage.submissions.list_submissions(form.id)
    assert submission.data == {"name": "Ann", "attachment": "see file"}
    assert submission.file_path.startswith("/uploads/")
    assert client.get(submission.file_path).content == b"receipt"


def test_index_lists_forms_whose_owner_is_gone(app, client) -> None:
    from formsaas.forms import create_form

    app.state.storage.forms.create_form(create_form("ghost", {"title": "Orphan"}))
    index = client.get("/")
    assert index.status_code == 200
    assert "Other forms" in index.text
    assert "Orphan" in index.text


def test_failed_submission_does_not_leave_its_upload_behind(app, acme, client, monkeypatch) -> None:
    from formsaas.errors import StorageFailure

    owner_client, owner_id = acme
    _create_survey(owner_client, allowFile="on")
    form = _only_form(app, owner_id)

    def broken(submission) -> None:
        raise StorageFailure("disk full")

    monkeypatch.setattr(app.state.storage.submissions, "create_submission", broken)
    response = client.post(
        f"/form/{form.id}",
        data={"email": "a@b.com"},
        files={"attachment": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert response.status_code == 500
    assert response.text == "Server error"
    upload_dir = app.state.settings.upload_dir
    assert not upload_dir.exists() or list(upload_dir.iterdir()) == []
