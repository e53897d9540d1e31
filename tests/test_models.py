import pytest

from applyhawk.models import Experience, Resume, Settings, Vacancy, str_list


def test_experience_accepts_model_keys():
    exp = Experience.from_dict({
        "companyName": "Globex",
        "title": "Engineer",
        "startDate": 2021,
        "endDate": None,
        "achievements": "Shipped v2, Cut costs",
    })
    assert exp.company == "Globex"
    assert exp.position == "Engineer"
    assert exp.start_date == "2021"
    assert exp.is_current
    assert exp.achievements == ["Shipped v2", "Cut costs"]


def test_experience_present_string_is_current():
    assert Experience(company="a", position="b", end_date="Present").is_current
    assert not Experience(company="a", position="b", end_date="2020-01").is_current


def test_resume_round_trip(resume):
    assert Resume.from_dict(resume.to_dict()) == resume


def test_vacancy_from_parsed_reply():
    vacancy = Vacancy.from_dict({"title": "SRE", "keySkills": "Go, Linux", "id": 17})
    assert vacancy.name == "SRE"
    assert vacancy.key_skills == ["Go", "Linux"]
    assert vacancy.id == "17"
    assert vacancy.salary is None


def test_settings_round_trip_keeps_policy():
    settings = Settings.from_dict({"aggressiveFit": {"enabled": False, "aggressivenessOverride": 0.4}})
    assert settings.aggressive_fit.enabled is False
    assert settings.aggressive_fit.aggressiveness_override == 0.4
    assert Settings.from_dict(settings.to_dict()) == settings


def test_str_list_shapes():
    assert str_list("Go, Kafka ,") == ["Go", "Kafka"]
    assert str_list(["Go", None, " ", 3]) == ["Go", "3"]
    assert str_list(None) == []
    with pytest.raises(TypeError):
        str_list(5)
