import unittest

from coachfee.utils.phone import normalize_phone, is_valid_phone


class NormalizePhoneTests(unittest.TestCase):
    def test_local_number(self):
        self.assertEqual(normalize_phone("01712345678"), "+8801712345678")

    def test_country_code_without_plus(self):
        self.assertEqual(normalize_phone("8801712345678"), "+8801712345678")

    def test_country_code_with_plus(self):
        self.assertEqual(normalize_phone("+8801712345678"), "+8801712345678")

    def test_punctuation_is_ignored(self):
        self.assertEqual(normalize_phone("+880 1712-345 678"), "+8801712345678")
        self.assertEqual(normalize_phone("(017) 1234 5678"), "+8801712345678")

    def test_country_code_followed_by_trunk_zero(self):
        self.assertEqual(normalize_phone("+880 01712345678"), "+8801712345678")

    def test_every_operator_digit_3_to_9(self):
        for d in "3456789":
            self.assertEqual(normalize_phone(f"01{d}12345678"), f"+8801{d}12345678")

    def test_wrong_operator_digit(self):
        self.assertIsNone(normalize_phone("0271234567"))
        self.assertIsNone(normalize_phone("01212345678"))

    def test_wrong_length(self):
        self.assertIsNone(normalize_phone("017123456"))
        self.assertIsNone(normalize_phone("017123456789"))

    def test_empty_and_non_string(self):
        self.assertIsNone(normalize_phone(""))
        self.assertIsNone(normalize_phone(None))
        self.assertIsNone(normalize_phone(1712345678))
        self.assertIsNone(normalize_phone("not a phone"))

    def test_is_valid_phone(self):
        self.assertTrue(is_valid_phone("01812345678"))
        self.assertFalse(is_valid_phone("12345"))


if __name__ == "__main__":
    unittest.main()
