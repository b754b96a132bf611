from conftest import auth, signup


def enrolled_student(campus, name="Alice"):
    client, course = campus["client"], campus["course"]
    token, user = signup(client, name)
    resp = client.post("/enrollments", json={"course_id": course["course_id"]}, headers=auth(token))
    assert resp.status_code == 201
    return token, user


class TestQuizzes:
    def submit(self, campus, token, day, answers):
        return campus["client"].post(
            f"/quizzes/{campus['course']['course_id']}/days/{day}/submit",
            json={"selected_answers": answers},
            headers=auth(token),
        )

    def test_graded_server_side(self, campus):
        token, _ = enrolled_student(campus)

        first = self.submit(campus, token, 1, [0, 1])
        assert first.status_code == 201
        assert first.json()["score"] == 50
        assert first.json()["attempt_number"] == 1
        assert first.json()["correct_answers"] == [0, 0]

        second = self.submit(campus, token, 1, [0, 0])
        assert second.json()["score"] == 100
        assert second.json()["attempt_number"] == 2

    def test_answers_hidden_from_course_detail(self, campus):
        detail = campus["client"].get(f"/courses/{campus['course']['course_id']}").json()
        option = detail["roadmap"][0]["mcqs"][0]["options"][0]
        assert "is_correct" not in option

    def test_bad_submissions(self, campus):
        token, _ = enrolled_student(campus)
        assert self.submit(campus, token, 1, [0]).status_code == 400
        assert self.submit(campus, token, 1, [0, 7]).status_code == 400
        assert self.submit(campus, token, 9, [0, 0]).status_code == 404
        assert self.submit(campus, token, 1, [-1, 0]).status_code == 422

    def test_not_enrolled(self, campus):
        token, _ = signup(campus["client"], "Bob")
        assert self.submit(campus, token, 1, [0, 0]).status_code == 403

    def test_stats_and_leaderboard_agree(self, campus):
        client = campus["client"]
        alice_token, alice = enrolled_student(campus, "Alice")
        bob_token, bob = enrolled_student(campus, "Bob")

        self.submit(campus, alice_token, 1, [0, 1])
        self.submit(campus, alice_token, 1, [0, 0])
        self.submit(campus, alice_token, 2, [1, 1])
        self.submit(campus, bob_token, 1, [0, 0])
        client.put(f"/my-courses/{campus['course']['course_id']}/days/1", json={"completed": True}, headers=auth(bob_token))

        stats = client.get("/student/quiz-stats", headers=auth(alice_token)).json()
        assert stats["total_attempts"] == 3
        assert stats["days_attempted"] == 2
        assert stats["quiz_points"] == 75.0

        subs = client.get("/student/quiz-submissions", headers=auth(alice_token)).json()
        assert subs["count"] == 3

        board = client.get("/leaderboard/students").json()
        assert board["total_users"] == 2
        first, second = board["entries"]
        assert (first["user_id"], first["total_points"]) == (bob["user_id"], 125.0)
        assert (second["user_id"], second["quiz_points"]) == (alice["user_id"], stats["quiz_points"])
        assert [first["rank"], second["rank"]] == [1, 2]


class TestReviews:
    def test_enrolled_student_reviews(self, campus):
        client, course_id = campus["client"], campus["course"]["course_id"]
        token, _ = enrolled_student(campus)

        assert client.post(f"/courses/{course_id}/reviews", json={"rating": 3}, headers=auth(token)).status_code == 201
        client.post(f"/courses/{course_id}/reviews", json={"rating": 5, "comment": "Great"}, headers=auth(token))

        reviews = client.get(f"/courses/{course_id}/reviews").json()
        assert reviews["count"] == 1
        assert reviews["rating"] == 5.0

    def test_outsider_cannot_review(self, campus):
        token, _ = signup(campus["client"], "Bob")
        resp = campus["client"].post(
            f"/courses/{campus['course']['course_id']}/reviews", json={"rating": 1}, headers=auth(token)
        )
        assert resp.status_code == 403


class TestDiscussions:
    def test_thread_with_reply_and_like(self, campus):
        client, course_id = campus["client"], campus["course"]["course_id"]
        token, _ = enrolled_student(campus)
        instructor_token = campus["instructor_token"]

        created = client.post(
            f"/courses/{course_id}/discussions", json={"title": "Day 2", "content": "Stuck on loops"}, headers=auth(token)
        )
        assert created.status_code == 201
        discussion_id = created.json()["discussion"]["discussion_id"]

        reply = client.post(f"/discussions/{discussion_id}/replies", json={"content": "Try range()"}, headers=auth(instructor_token))
        assert reply.status_code == 201

        liked = client.post(f"/discussions/{discussion_id}/like", headers=auth(instructor_token)).json()
        assert liked["liked"] is True and liked["like_count"] == 1
        unliked = client.post(f"/discussions/{discussion_id}/like", headers=auth(instructor_token)).json()
        assert unliked["liked"] is False and unliked["like_count"] == 0

        listed = client.get(f"/courses/{course_id}/discussions", headers=auth(token)).json()
        assert listed["discussions"][0]["reply_count"] == 1

        notes = client.get("/notifications", headers=auth(token)).json()
        assert notes["notifications"][0]["type"] == "discussion"

        inbox = client.get("/instructor/discussions", headers=auth(instructor_token)).json()
        assert inbox["count"] == 1

    def test_outsider_blocked(self, campus):
        token, _ = signup(campus["client"], "Bob")
        resp = campus["client"].get(f"/courses/{campus['course']['course_id']}/discussions", headers=auth(token))
        assert resp.status_code == 403

    def test_only_author_or_admin_deletes(self, campus):
        client, course_id = campus["client"], campus["course"]["course_id"]
        token, _ = enrolled_student(campus, "Alice")
        other_token, _ = enrolled_student(campus, "Bob")

        discussion_id = client.post(
            f"/courses/{course_id}/discussions", json={"title": "Hi", "content": "Hello"}, headers=auth(token)
        ).json()["discussion"]["discussion_id"]

        assert client.delete(f"/discussions/{discussion_id}", headers=auth(other_token)).status_code == 403
        assert client.delete(f"/discussions/{discussion_id}", headers=auth(campus["admin_token"])).status_code == 200
        assert client.delete(f"/discussions/{discussion_id}", headers=auth(token)).status_code == 404


class TestMessages:
    def test_student_and_instructor_conversation(self, campus):
        client, course_id = campus["client"], campus["course"]["course_id"]
        token, student = enrolled_student(campus)
        instructor_token, instructor = campus["instructor_token"], campus["instructor"]

        sent = client.post("/messages", json={
            "receiver_id": instructor["user_id"], "course_id": course_id, "content": "When is day 3 due?"
        }, headers=auth(token))
        assert sent.status_code == 201

        convs = client.get("/messages/conversations", headers=auth(instructor_token)).json()
        assert convs["count"] == 1
        assert convs["conversations"][0]["partner_id"] == student["user_id"]
        assert convs["conversations"][0]["unread_count"] == 1

        thread = client.get(f"/messages/{student['user_id']}/{course_id}", headers=auth(instructor_token)).json()
        assert thread["count"] == 1

        convs = client.get("/messages/conversations", headers=auth(instructor_token)).json()
        assert convs["conversations"][0]["unread_count"] == 0

    def test_students_cannot_message_each_other(self, campus):
        client, course_id = campus["client"], campus["course"]["course_id"]
        token, _ = enrolled_student(campus, "Alice")
        _, bob = enrolled_student(campus, "Bob")

        resp = client.post("/messages", json={
            "receiver_id": bob["user_id"], "course_id": course_id, "content": "hi"
        }, headers=auth(token))
        assert resp.status_code == 403

    def test_cannot_message_self(self, campus):
        token, me = enrolled_student(campus)
        resp = campus["client"].post("/messages", json={
            "receiver_id": me["user_id"], "course_id": campus["course"]["course_id"], "content": "hi"
        }, headers=auth(token))
        assert resp.status_code == 400
