import random
import string
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.errors import InvalidGameInputError
from app.schemas.unemployedle import RankedJob
from app.services.unemployedle_game import (
    apply_guess,
    build_start_response,
    mask_company_name,
    new_game,
)


def make_game(company: str = "Acme", max_guesses: int = 7, hint: str = "Fast-growing software startup."):
    job = RankedJob(
        id="job-1",
        company=company,
        title="Backend Engineer",
        url="https://acme.com/careers/backend-1",
        company_hint=hint,
        match_score=0.876,
        overall_score=0.876,
    )
    return new_game(job, max_guesses=max_guesses, selection_summary="Picked one.", created_at=0.0)


class MaskingTests(unittest.TestCase):
    def test_only_ascii_letters_are_masked(self):
        self.assertEqual(mask_company_name("AT&T 2.0", set()), "__&_ 2.0")
        self.assertEqual(mask_company_name("Café Co", set()), "___é __")

    def test_revealed_letters_are_case_insensitive(self):
        self.assertEqual(mask_company_name("Acme", {"A", "M"}), "A_m_")

    def test_mask_keeps_length_and_reveals_exactly_guessed(self):
        rng = random.Random(3)
        alphabet = string.ascii_letters + " &.-0123"
        for _ in range(200):
            company = "".join(rng.choice(alphabet) for _ in range(rng.randint(1, 20)))
            guessed = set(rng.sample(string.ascii_uppercase, rng.randint(0, 10)))
            masked = mask_company_name(company, guessed)
            self.assertEqual(len(masked), len(company))
            for original, shown in zip(company, masked):
                if original.isascii() and original.isalpha() and original.upper() not in guessed:
                    self.assertEqual(shown, "_")
                else:
                    self.assertEqual(shown, original)


class GuessTests(unittest.TestCase):
    def test_start_response_shape(self):
        response = build_start_response(make_game())
        self.assertEqual(response.masked_company, "____")
        self.assertEqual(response.status, "in_progress")
        self.assertEqual(response.job.match_score, 88)
        self.assertEqual(response.job.company_masked, "____")
        self.assertIsNone(response.hint)

    def test_correct_guess_reveals_without_cost(self):
        game = make_game()
        response = apply_guess(game, " c ")
        self.assertEqual(response.masked_company, "_c__")
        self.assertEqual(response.guesses_left, 7)
        self.assertEqual(response.guessed_letters, ["C"])
        self.assertFalse(response.already_guessed)

    def test_win_reveals_company_and_url(self):
        game = make_game()
        for letter in "acm":
            apply_guess(game, letter)
        response = apply_guess(game, "E")
        self.assertEqual(response.status, "won")
        self.assertEqual(response.revealed_company, "Acme")
        self.assertEqual(response.job_url, "https://acme.com/careers/backend-1")
        self.assertIsNone(response.hint)

    def test_loss_after_max_wrong_guesses(self):
        game = make_game(max_guesses=3)
        apply_guess(game, "x")
        apply_guess(game, "y")
        response = apply_guess(game, "z")
        self.assertEqual(response.status, "lost")
        self.assertEqual(response.guesses_left, 0)
        self.assertEqual(response.incorrect_guesses, ["X", "Y", "Z"])
        self.assertEqual(response.revealed_company, "Acme")

    def test_terminal_game_is_idempotent(self):
        game = make_game(max_guesses=1)
        apply_guess(game, "z")
        snapshot = (set(game.guessed_letters), game.guesses_left, game.masked_company)
        response = apply_guess(game, "a")
        self.assertEqual(response.status, "lost")
        self.assertFalse(response.already_guessed)
        self.assertEqual((set(game.guessed_letters), game.guesses_left, game.masked_company), snapshot)

    def test_repeated_letter_costs_nothing(self):
        game = make_game()
        apply_guess(game, "q")
        response = apply_guess(game, "Q")
        self.assertTrue(response.already_guessed)
        self.assertEqual(response.guesses_left, 6)

    def test_invalid_letters_raise_without_mutation(self):
        game = make_game()
        for letter in ("", "ab", "1", "é", "!"):
            with self.subTest(letter=letter):
                with self.assertRaises(InvalidGameInputError) as raised:
                    apply_guess(game, letter)
                self.assertEqual(raised.exception.code, "invalid_letter")
        self.assertEqual(game.guessed_letters, set())
        self.assertEqual(game.guesses_left, 7)

    def test_hint_appears_only_when_two_or_fewer_guesses_remain(self):
        game = make_game(max_guesses=4)
        self.assertIsNone(apply_guess(game, "x").hint)
        response = apply_guess(game, "y")
        self.assertEqual(response.guesses_left, 2)
        self.assertEqual(response.hint, "Fast-growing software startup.")

    def test_empty_hint_is_omitted(self):
        game = make_game(max_guesses=2, hint="")
        self.assertIsNone(build_start_response(game).hint)


if __name__ == "__main__":
    unittest.main()
