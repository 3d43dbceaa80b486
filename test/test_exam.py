# Unit tests for the practice exam session
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.errors import IncompleteExam
from backend.exam import ExamSession
from backend.models import ExamQuestion


def make_exam(count=5):
    return ExamSession(questions=[
        ExamQuestion(id=i + 1, question=f"Question {i + 1}", options=["A", "B", "C", "D"],
                     correct_answer_index=i % 4, explanation=f"Because {i % 4}")
        for i in range(count)
    ])


class TestExamSession(unittest.TestCase):
    def test_three_of_five(self):
        exam = make_exam()
        for question in exam.questions[:3]:
            exam.select(question.id, question.correct_answer_index)
        for question in exam.questions[3:]:
            exam.select(question.id, (question.correct_answer_index + 1) % 4)

        self.assertTrue(exam.can_submit)
        self.assertEqual(exam.submit(), 3)
        self.assertTrue(exam.submitted)
        self.assertFalse(exam.can_submit)

    def test_submit_blocked_until_every_answer(self):
        exam = make_exam()
        for question in exam.questions[:4]:
            exam.select(question.id, 0)
        self.assertFalse(exam.can_submit)
        with self.assertRaises(IncompleteExam):
            exam.submit()
        self.assertFalse(exam.submitted)

    def test_no_questions_cannot_submit(self):
        exam = ExamSession()
        self.assertFalse(exam.can_submit)
        with self.assertRaises(IncompleteExam):
            exam.submit()

    def test_reselect_overwrites(self):
        exam = make_exam(1)
        exam.select(1, 2)
        exam.select(1, 0)
        self.assertEqual(exam.answers, {1: 0})

    def test_answers_frozen_after_submit(self):
        exam = make_exam(1)
        exam.select(1, 0)
        exam.submit()
        exam.select(1, 3)
        self.assertEqual(exam.answers, {1: 0})
        self.assertEqual(exam.score, 1)

    def test_invalid_selection(self):
        exam = make_exam(1)
        with self.assertRaises(ValueError):
            exam.select(99, 0)
        with self.assertRaises(ValueError):
            exam.select(1, 4)

    def test_option_status(self):
        exam = make_exam(2)
        exam.select(1, 0)
        exam.select(2, 3)  # correct answer is 1
        exam.submit()
        self.assertEqual(exam.option_status(2, 1), "correct")
        self.assertEqual(exam.option_status(2, 3), "incorrect")
        self.assertEqual(exam.option_status(2, 0), "unselected")


if __name__ == "__main__":
    unittest.main()
