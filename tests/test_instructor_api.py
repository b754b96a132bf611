from learnhub.instructors.profile import profile_completion

from conftest import auth, signup


def test_pending_instructor_fills_profile(client):
    token, _ = signup(client, "Priya", role="instructor")

    profile = client.get("/instructor/profile", headers=auth(token))
    assert profile.status_code == 200
    assert profile.json()["profile_completion"] == 18
    assert profile.json()["stats"]["total_courses"] == 0

    resp = client.put("/instructor/profile", json={
        "specialty": "Data Science",
        "experience": 5,
        "phone": "9876543210",
        "location": "Chennai",
        "bio": "Teaching analytics for a decade",
        "social_links": {"linkedin": "https://linkedin.com/in/priya"},
    }, headers=auth(token))
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["instructor_profile"]["specialty"] == "Data Science"
    assert user["instructor_profile"]["social_links"] == {
        "linkedin": "https://linkedin.com/in/priya", "twitter": None, "website": None
    }
    assert user["profile_completion"] == 73

    again = client.put(
        "/instructor/profile", json={"social_links": {"website": "https://priya.dev"}}, headers=auth(token)
    ).json()["user"]
    assert again["instructor_profile"]["social_links"]["linkedin"] == "https://linkedin.com/in/priya"
    assert again["instructor_profile"]["specialty"] == "Data Science"
    assert again["profile_completion"] == 82


def test_students_have_no_instructor_profile(client):
    token, _ = signup(client, "Alice")
    assert client.get("/instructor/profile", headers=auth(token)).status_code == 403
    assert client.put("/instructor/profile", json={"bio": "hi"}, headers=auth(token)).status_code == 403


def test_empty_profile_update(client):
    token, _ = signup(client, "Priya", role="instructor")
    assert client.put("/instructor/profile", json={}, headers=auth(token)).status_code == 400


def test_teaching_stats(campus):
    client, course_id = campus["client"], campus["course"]["course_id"]
    token, _ = signup(client, "Alice")
    client.post("/enrollments", json={"course_id": course_id}, headers=auth(token))
    client.post(f"/courses/{course_id}/reviews", json={"rating": 4, "comment": "Clear"}, headers=auth(token))

    stats = client.get("/instructor/profile", headers=auth(campus["instructor_token"])).json()["stats"]
    assert stats["total_courses"] == 1
    assert stats["total_students"] == 1
    assert stats["total_roadmap_days"] == 4
    assert stats["average_rating"] == 4.0
    assert stats["recent_reviews"][0]["course_title"] == "Python Basics"
    assert stats["recent_reviews"][0]["student_name"] == "Alice"


def test_zero_experience_counts_as_missing():
    user = {"name": "Priya", "email": "p@example.com", "instructor_profile": {"experience": 0}}
    assert profile_completion(user) == 18
