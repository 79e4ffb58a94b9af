"""Interactive command-line interface for Inkwell."""

from __future__ import annotations

from .agents import AgentCoordinator, TaskOptions, apply_entities
from .config import InkwellConfig, load_config
from .context.models import TaskType
from .extraction import DetectedEntity, detect_entities
from .logging import configure_logger, get_logger
from .providers.base import ConversationTurn
from .store import Repository, SQLiteRepository

DEFAULT_PROJECT = "default"
EDIT_SEPARATOR = "::"

BANNER = """
╔══════════════════════════════════════════╗
║            ✒️  Inkwell v0.1.0             ║
║      Creative Writing Agent Console      ║
╚══════════════════════════════════════════╝

Commands:
  /world <request>            - Create world-building lore
  /character <request>        - Create a character
  /story <concept>            - Outline a story (three-act)
  /edit <instruction> :: <text> - Revise a passage
  /plan <request>             - Story analysis / planning
  /full <description>         - World, characters and outline in one go
  /project <id>               - Switch project
  /entities                   - Save characters/lore from the last reply
  /reset                      - Clear all agent conversations
  /help                       - Show this help
  /exit, /quit                - Exit the CLI

Anything else is sent to the planning assistant.
"""

COMMAND_TASKS = {
    "/world": TaskType.WORLD_BUILDING,
    "/character": TaskType.CHARACTER_DEVELOPMENT,
    "/story": TaskType.STORY_PLANNING,
    "/edit": TaskType.EDITING,
    "/plan": TaskType.PLANNING,
    "/full": TaskType.FULL_PROJECT,
}

FULL_PROJECT_LABELS = {
    "world_building": "World",
    "characters": "Characters",
    "story_outline": "Story outline",
}


class CLI:
    """Interactive command-line interface for Inkwell."""

    def __init__(
        self,
        repository: Repository,
        coordinator: AgentCoordinator | None = None,
        config: InkwellConfig | None = None,
        project_id: str = DEFAULT_PROJECT,
    ) -> None:
        self.repository = repository
        self.coordinator = coordinator or AgentCoordinator(repository, config=config)
        self.project_id = project_id
        self.logger = get_logger()
        self._history: list[ConversationTurn] = []
        self._pending: list[DetectedEntity] = []

    def _format_response(self, response: str) -> str:
        """Format an agent response for display."""
        return "\n".join(["\n" + "─" * 40, response, "─" * 40])

    def _show(self, text: str) -> None:
        print(self._format_response(text))
        entities = detect_entities(text)
        if entities:
            self._pending = entities
            count = sum(len(e.items) for e in entities)
            print(f"📦 Detected {count} item(s). Type /entities to save them.")

    async def _run_task(self, task_type: TaskType, text: str) -> None:
        """Run a task through the coordinator and print the result."""
        options = TaskOptions(history=list(self._history))
        if task_type == TaskType.EDITING:
            instruction, sep, selected = text.partition(EDIT_SEPARATOR)
            if not sep or not selected.strip():
                print(f"Usage: /edit <instruction> {EDIT_SEPARATOR} <text>")
                return
            text = instruction.strip()
            options.selected_text = selected.strip()

        if not text:
            print("Please add a request after the command.")
            return

        try:
            result = await self.coordinator.process_task(
                self.project_id, text, task_type, options
            )
        except Exception as e:
            print(f"\n❌ Error: {e}")
            self.logger.log("error", project_id=self.project_id, error=str(e))
            return

        if isinstance(result, dict):
            for key, label in FULL_PROJECT_LABELS.items():
                value = result.get(key)
                print(f"\n## {label}")
                if value is None:
                    print("⚠ This stage failed, see the logs.")
                else:
                    self._show(value)
            return

        if task_type == TaskType.PLANNING:
            self._history.append(ConversationTurn(role="user", content=text))
            self._history.append(ConversationTurn(role="assistant", content=result))
        self._show(result)

    def _save_entities(self) -> None:
        """Persist the entities detected in the last reply."""
        if not self._pending:
            print("Nothing to save.")
            return
        try:
            applied = apply_entities(self.project_id, self._pending, self.repository)
        except Exception as e:
            print(f"\n❌ Error: {e}")
            self.logger.log("error", project_id=self.project_id, error=str(e))
            return

        self._pending = []
        print(
            f"✓ Saved {len(applied.characters)} character(s) and "
            f"{len(applied.facts)} lore entr{'y' if len(applied.facts) == 1 else 'ies'}."
        )
        if applied.scenes:
            print(f"  {len(applied.scenes)} scene suggestion(s) were not stored.")
        if applied.skipped:
            print(f"  Skipped {applied.skipped} incomplete item(s).")
        if applied.failed:
            print(f"  ⚠ {applied.failed} item(s) could not be stored, see the logs.")

    def _reset(self) -> None:
        self.coordinator.clear_all_history()
        self._history = []
        self._pending = []
        self.logger.log("session_reset", project_id=self.project_id)
        print("\n✓ Conversations cleared.")

    async def _handle_command(self, line: str) -> bool:
        """Handle a special command. Returns True if should continue, False to exit."""
        command, _, argument = line.strip().partition(" ")
        command = command.lower()
        argument = argument.strip()

        if command in ("/exit", "/quit", "exit", "quit"):
            print("\n👋 Goodbye!")
            self.logger.log("session_end", project_id=self.project_id)
            return False

        if command in COMMAND_TASKS:
            await self._run_task(COMMAND_TASKS[command], argument)
            return True

        if command == "/project":
            if not argument:
                print(f"Current project: {self.project_id}")
                return True
            self.project_id = argument
            self._history = []
            self._pending = []
            self.logger.set_project_id(argument)
            print(f"✓ Switched to project {argument}")
            return True

        if command == "/entities":
            self._save_entities()
            return True

        if command == "/reset":
            self._reset()
            return True

        if command == "/help":
            print(BANNER)
            return True

        print(f"Unknown command: {command}. Type /help for the list.")
        return True

    async def run(self) -> None:
        """Run the interactive CLI."""
        print(BANNER)
        print(f"Project: {self.project_id}\n")
        self.logger.set_project_id(self.project_id)
        self.logger.log("session_start", project_id=self.project_id)

        while True:
            try:
                user_input = input("you> ").strip()

                if not user_input:
                    continue

                if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                    if not await self._handle_command(user_input):
                        break
                    continue

                await self._run_task(TaskType.PLANNING, user_input)

            except KeyboardInterrupt:
                print("\n\n⚡ Interrupted")
                try:
                    confirm = input("Exit? (y/n): ").strip().lower()
                    if confirm in ("y", "yes"):
                        print("👋 Goodbye!")
                        self.logger.log("session_interrupt", project_id=self.project_id)
                        break
                except (KeyboardInterrupt, EOFError):
                    print("\n👋 Goodbye!")
                    break

            except EOFError:
                print("\n👋 Goodbye!")
                break


async def run_cli() -> None:
    """Run the CLI with configuration from ~/.inkwell and the environment."""
    config = load_config()
    configure_logger(config.log_dir)

    if not config.api_key:
        print(f"❌ Error: {config.api_key_env} environment variable not set")
        print("Please set it in your .env file or environment")
        return

    repository = SQLiteRepository(config.db_path)
    repository.init_db()
    try:
        await CLI(repository, config=config).run()
    finally:
        repository.close()
