"""
Command-line interface for Shopfloor Trainer.

Main entry point and practice loop. Drives the three practice modes by hand
against the configured content backend.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from prompt_toolkit import PromptSession

from ..config import load_rules
from ..errors import InvalidPhaseError, SessionBusyError
from ..llm import LMStudioClient
from ..orchestrator import Orchestrator, create_content_provider
from ..sessions import (
    BranchingScenarioSession,
    OpenDialogueSession,
    QuizPhase,
    ScenarioPhase,
    TimedChoiceSession,
)
from ..state import Mood, ProgressStore
from .config import BACKENDS, load_config, resolve_rules_path, update_config
from .renderer import (
    THEME,
    console,
    pt_style,
    show_banner,
    show_customer,
    show_feedback,
    show_help,
    show_leaderboard,
    show_options,
    show_profile,
    show_result,
)

logger = logging.getLogger(__name__)

COMMANDS = {
    "/quiz": "Timed multiple-choice quiz",
    "/scenario": "Branching sales scenario",
    "/dialogue": "Negotiate with a simulated customer",
    "/profile": "Show your profile",
    "/leaderboard": "Show the registry ranking",
    "/backend": "Switch content backend (auto, lmstudio, offline)",
    "/model": "Set the LM Studio model",
    "/logout": "Log out",
    "/help": "Show help",
    "/quit": "Exit",
}


class TrainerCLI:
    """Interactive loop around one Orchestrator."""

    def __init__(self, trainer: Orchestrator, data_dir: Path):
        self.trainer = trainer
        self.data_dir = data_dir
        self.prompt = PromptSession(style=pt_style)

    async def ask(self, text: str = "> ", **kwargs) -> str:
        return (await self.prompt.prompt_async(text, **kwargs)).strip()

    # ─── Quiz ────────────────────────────────────────────────────

    async def play_quiz(self, session: TimedChoiceSession) -> None:
        with console.status("Preparing questions..."):
            await session.start()
        if session.used_fallback:
            console.print(f"[{THEME['dim']}]Using the offline question set.[/{THEME['dim']}]")

        while session.phase not in (QuizPhase.FINISHED, QuizPhase.CLOSED):
            if session.phase == QuizPhase.AWAITING_ANSWER:
                question = session.current_question
                show_options(
                    f"Question {session.state.step_index + 1}/{len(session.questions)}: {question.prompt}",
                    question.options,
                    footer="0. Your own answer   q. Leave",
                )
                answer = await self.ask(
                    "answer> ",
                    bottom_toolbar=lambda: f" {session.time_left}s left  |  score {session.total_score}",
                    refresh_interval=0.5,
                )
                if session.phase != QuizPhase.AWAITING_ANSWER:
                    continue  # timed out while typing
                if answer == "q":
                    session.close()
                elif answer == "0":
                    await self._quiz_custom_answer(session)
                elif answer.isdigit() and 1 <= int(answer) <= len(question.options):
                    session.select_option(int(answer) - 1)

            elif session.phase == QuizPhase.SHOWING_FEEDBACK:
                if session.timed_out:
                    console.print(f"[{THEME['danger']}]Time is up.[/{THEME['danger']}]")
                show_feedback(session.last_delta, session.last_feedback)
                await self.ask("Enter to continue ")
                session.advance()

        show_result(session.reported_score, session.end_reason.value if session.end_reason else None)

    async def _quiz_custom_answer(self, session: TimedChoiceSession) -> None:
        session.enter_custom_answer()
        text = await self.ask("your answer (empty to go back)> ")
        if not text:
            session.cancel_custom_answer()
            return
        with console.status("Evaluating..."):
            await session.submit_custom_answer(text)

    # ─── Scenario ────────────────────────────────────────────────

    async def play_scenario(self, session: BranchingScenarioSession) -> None:
        with console.status("Preparing a situation..."):
            await session.start()

        while session.phase != ScenarioPhase.CLOSED:
            if session.phase == ScenarioPhase.FINISHED:
                show_feedback(session.state.score_history[-1], session.last_feedback)
                show_result(session.reported_score, session.end_reason.value)
                if await self.ask("n. New situation   Enter. Leave > ") != "n":
                    return
                with console.status("Preparing a situation..."):
                    await session.new_situation()
                continue

            step = session.current_step
            if session.last_feedback:
                show_feedback(session.state.score_history[-1], session.last_feedback)
            show_customer(step.client_line)
            show_options(
                f"{session.scenario.product}  step {session.state.step_index + 1}/{len(session.scenario.steps)}",
                step.options,
                footer="b. Back   n. New situation   q. Leave",
            )
            answer = await self.ask("choice> ")
            if answer == "q":
                session.close()
            elif answer == "b":
                session.back()
            elif answer == "n":
                with console.status("Preparing a situation..."):
                    await session.new_situation()
            elif answer.isdigit() and 1 <= int(answer) <= len(step.options):
                session.choose(int(answer) - 1)

        console.print(f"[{THEME['dim']}]Scenario closed.[/{THEME['dim']}]")

    # ─── Dialogue ────────────────────────────────────────────────

    async def play_dialogue(self, session: OpenDialogueSession) -> None:
        await session.start()
        console.print(
            f"[{THEME['dim']}]{session.product.name}, {session.product.base_price:,}. "
            f"/mood neutral|irritated|doubtful before you start, ?text to check spelling, "
            f"/new for another customer, /quit to leave.[/{THEME['dim']}]"
        )
        show_customer(session.transcript[0].text)

        while True:
            if session.is_over:
                show_result(session.reported_score, session.end_reason.value if session.end_reason else None)
                if session.analysis is not None:
                    console.print(f"Satisfaction {session.analysis.satisfaction_percent}%: {session.analysis.feedback}")
                if await self.ask("n. New customer   Enter. Leave > ") != "n":
                    return
                await session.new_client()
                show_customer(session.transcript[0].text)
                continue

            text = await self.ask(
                "you> ",
                bottom_toolbar=lambda: f" stress {session.stress_level}/{session.rules.stress_max}  |  mood {session.mood.value}",
            )
            if text == "/quit":
                session.close()
                return
            if text == "/new":
                await session.new_client()
                show_customer(session.transcript[0].text)
                continue
            if text.startswith("/mood "):
                try:
                    session.set_mood(Mood(text.split(maxsplit=1)[1]))
                except (ValueError, InvalidPhaseError) as e:
                    console.print(f"[{THEME['warning']}]{e}[/{THEME['warning']}]")
                continue
            if text.startswith("?"):
                text = await self._spelling_assist(session, text[1:].strip())
                if not text:
                    continue

            try:
                with console.status("The customer is thinking..."):
                    reply = await session.send(text)
            except SessionBusyError:
                continue
            if reply:
                show_customer(reply)

    async def _spelling_assist(self, session: OpenDialogueSession, draft: str) -> str:
        suggestion = await session.check_spelling(draft)
        if suggestion is None:
            return draft
        console.print(f"Did you mean: [{THEME['accent']}]{suggestion.corrected}[/{THEME['accent']}]")
        if suggestion.explanation:
            console.print(f"[{THEME['dim']}]{suggestion.explanation}[/{THEME['dim']}]")
        if await self.ask("accept? [y/N] ") == "y":
            return session.accept_suggestion() or draft
        session.dismiss_suggestion()
        return draft

    # ─── Main loop ───────────────────────────────────────────────

    async def login(self) -> None:
        while not self.trainer.logged_in:
            name = await self.ask("Your name: ")
            if not name:
                continue
            store = await self.ask("Your store: ")
            self.trainer.login(name, store=store)
        console.print(f"Hello, [bold]{self.trainer.profile.name}[/bold].")

    async def run(self) -> None:
        await self.login()
        show_help(COMMANDS)

        while True:
            try:
                command, _, arg = (await self.ask()).partition(" ")
            except (EOFError, KeyboardInterrupt):
                return

            if command in ("/quit", "/exit"):
                return
            elif command == "/help":
                show_help(COMMANDS)
            elif command == "/quiz":
                await self.play_quiz(self.trainer.start_quiz())
            elif command == "/scenario":
                await self.play_scenario(self.trainer.start_scenario())
            elif command == "/dialogue":
                await self.play_dialogue(self.trainer.start_dialogue())
            elif command == "/profile":
                show_profile(self.trainer.profile)
            elif command == "/leaderboard":
                show_leaderboard(self.trainer.store.leaderboard(limit=10))
            elif command == "/backend" and arg in BACKENDS:
                config = update_config(self.data_dir, backend=arg)
                name, self.trainer.provider = create_content_provider(arg, config["model"])
                console.print(f"Content backend: {name}")
            elif command == "/model" and arg:
                update_config(self.data_dir, model=arg)
                client = getattr(self.trainer.provider, "client", None)
                if isinstance(client, LMStudioClient):
                    client.set_model(arg)
                console.print(f"Model: {arg}")
            elif command == "/logout":
                self.trainer.logout()
                await self.login()
            elif command:
                console.print(f"[{THEME['dim']}]Unknown command. Type /help.[/{THEME['dim']}]")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Shopfloor Trainer - retail sales practice")
    parser.add_argument(
        "--data-dir", "-d",
        default="progress",
        help="Directory for progress files (default: progress)"
    )
    parser.add_argument(
        "--backend", "-b",
        choices=BACKENDS,
        help="Content backend (overrides the saved preference)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(message)s',
    )

    data_dir = Path(args.data_dir)
    config = load_config(data_dir)
    rules = load_rules(resolve_rules_path(config, data_dir))
    backend = args.backend or config["backend"]

    backend_name, provider = create_content_provider(backend, config["model"])
    logger.info(f"Content backend: {backend_name}")
    show_banner(backend_name)

    trainer = Orchestrator(ProgressStore(data_dir, rules), provider, rules=rules)
    try:
        asyncio.run(TrainerCLI(trainer, data_dir).run())
    except KeyboardInterrupt:
        pass
    console.print(f"[{THEME['dim']}]Progress saved to {data_dir}[/{THEME['dim']}]")


if __name__ == "__main__":
    main()
