from sitecheck.utils.response import envelope, success_response, error_response


def test_success_response_with_data():
    result = success_response(data={"key": "value"})
    assert result == {"status": "success", "data": {"key": "value"}, "message": None}


def test_success_response_with_message():
    result = success_response(data=None, message="Checklist enviado com sucesso")
    assert result == {"status": "success", "data": None, "message": "Checklist enviado com sucesso"}


def test_error_response():
    result = error_response("Erro de validação")
    assert result == {"status": "error", "data": None, "message": "Erro de validação"}


def test_error_response_with_data():
    result = error_response("Erro", data={"field": "site_code"})
    assert result == {"status": "error", "data": {"field": "site_code"}, "message": "Erro"}


def test_envelope_picks_by_outcome():
    assert envelope(True, {"a": 1})["status"] == "success"
    failed = envelope(False, {"a": 1})
    assert failed["status"] == "error"
    assert failed["message"] == "Erro"
