import unittest

from weefee.editing import LineBuffer


class TestLineBuffer(unittest.TestCase):
    def test_insert_at_cursor(self) -> None:
        buffer = LineBuffer("helo", 3).insert("l")

        self.assertEqual(buffer, LineBuffer("hello", 4))

    def test_insert_pasted_text(self) -> None:
        buffer = LineBuffer().insert("pass word")

        self.assertEqual(buffer.text, "pass word")
        self.assertEqual(buffer.cursor, 9)

    def test_delete_backward_at_start_is_noop(self) -> None:
        buffer = LineBuffer("abc", 0)

        self.assertEqual(buffer.delete_backward(), buffer)

    def test_delete_backward_removes_previous_char(self) -> None:
        self.assertEqual(LineBuffer("abc", 2).delete_backward(), LineBuffer("ac", 1))

    def test_delete_forward_keeps_cursor(self) -> None:
        self.assertEqual(LineBuffer("abc", 1).delete_forward(), LineBuffer("ac", 1))

    def test_delete_forward_at_end_is_noop(self) -> None:
        buffer = LineBuffer("abc", 3)

        self.assertEqual(buffer.delete_forward(), buffer)

    def test_word_left_steps_over_words(self) -> None:
        buffer = LineBuffer("hello world", 11)

        buffer = buffer.word_left()
        self.assertEqual(buffer.cursor, 6)
        buffer = buffer.word_left()
        self.assertEqual(buffer.cursor, 0)
        self.assertEqual(buffer.word_left().cursor, 0)

    def test_word_right_steps_over_words(self) -> None:
        buffer = LineBuffer("hello world", 0)

        buffer = buffer.word_right()
        self.assertEqual(buffer.cursor, 5)
        buffer = buffer.word_right()
        self.assertEqual(buffer.cursor, 11)
        self.assertEqual(buffer.word_right().cursor, 11)

    def test_delete_word_removes_previous_word_and_spaces(self) -> None:
        buffer = LineBuffer("correct horse  ", 15).delete_word()

        self.assertEqual(buffer, LineBuffer("correct ", 8))

    def test_cursor_moves_are_clamped(self) -> None:
        buffer = LineBuffer("ab", 0)

        self.assertEqual(buffer.move_left().cursor, 0)
        self.assertEqual(buffer.move_end().move_right().cursor, 2)
        self.assertEqual(buffer.move_end().move_home().cursor, 0)


if __name__ == "__main__":
    unittest.main()
