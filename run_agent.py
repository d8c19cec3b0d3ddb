"""Run the web test agent with a natural-language task"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from agent import WebTestAgent
from agent_types import RunTrace, TextDelta, ToolCallRecord, ToolCallRequest
from browser import BrowserSession, install_signal_handlers
from config import WebTestConfig, load_config
from exceptions import WebTestError
from llm import OpenAIChatModel
from reporters import JSONReporter
from tools import ToolRegistry


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Describe a web test in plain language and let the agent run it in a browser.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "Open https://example.com and check the heading says Example Domain"
  %(prog)s --headful --max-steps 10 "Log in at https://app.test with demo/demo"
        """,
    )
    parser.add_argument(
        "task",
        nargs="+",
        help="The test to perform, in plain language",
    )
    parser.add_argument(
        "--config",
        help="Path to config file (default: config.json if exists)",
    )
    parser.add_argument(
        "--browser",
        choices=["chromium", "firefox", "webkit"],
        help="Browser engine to use (default: chromium)",
    )
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Run browser in headful mode (show GUI)",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        metavar="N",
        help="Maximum number of tool-calling rounds (default: 20)",
    )
    parser.add_argument(
        "--model",
        help="Model name override",
    )
    parser.add_argument(
        "--no-trace",
        action="store_true",
        help="Do not write a JSON run trace",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-essential output",
    )
    return parser


def build_agent(
    config: WebTestConfig,
    session: BrowserSession,
    logger: Optional[logging.Logger] = None,
) -> WebTestAgent:
    """Wire model, tools and session together from configuration."""
    model = OpenAIChatModel(
        model=config.agent.model,
        base_url=config.agent.base_url,
        api_key=config.agent.api_key,
        temperature=config.agent.temperature,
        max_tokens=config.agent.max_tokens,
    )
    tools = ToolRegistry(session, screenshots_folder=config.reporting.screenshots_folder)
    return WebTestAgent(model, tools, max_steps=config.agent.max_steps, logger=logger)


async def run_task(task: str, config: WebTestConfig, logger: logging.Logger) -> int:
    """Run one task end to end. Returns the process exit code."""
    session = BrowserSession(
        browser_type=config.browser.browser,
        headless=config.browser.headless,
        viewport_width=config.browser.viewport_width,
        viewport_height=config.browser.viewport_height,
        slow_mo=config.browser.slow_mo,
    )
    install_signal_handlers(session)
    agent = build_agent(config, session, logger=logger)

    started_at = datetime.now()
    error: Optional[str] = None
    exit_code = 0
    try:
        logger.info("Initializing browser...")
        await session.acquire()

        async for event in agent.stream(task):
            if isinstance(event, TextDelta):
                sys.stdout.write(event.text)
                sys.stdout.flush()
            elif isinstance(event, ToolCallRequest):
                logger.debug(f"Calling {event.tool_name}: {event.raw_arguments[:200]}")
            elif isinstance(event, ToolCallRecord):
                logger.info(event.report.splitlines()[0] if event.report else event.request.tool_name)
        sys.stdout.write("\n")

        if agent.state.truncated:
            logger.warning(f"Stopped after {agent.state.step_index} steps without a final answer")
    except WebTestError as exc:
        error = str(exc)
        logger.error(f"Error: {exc}")
        exit_code = 1
    finally:
        logger.info("Closing browser...")
        await session.release()

    if config.reporting.save_trace:
        trace = RunTrace(
            task=task,
            state=agent.state,
            started_at=started_at,
            finished_at=datetime.now(),
            model=config.agent.model,
            error=error,
        )
        try:
            path = JSONReporter().generate(trace, Path(config.reporting.reports_folder))
            logger.info(f"Run trace written to {path}")
        except OSError as exc:
            logger.warning(f"Failed to write run trace: {exc}")

    return exit_code


def _setup_logging(verbose: bool, quiet: bool) -> logging.Logger:
    """Configure root logging; quiet wins over verbose."""
    if quiet:
        log_level = logging.WARNING
    elif verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format="[%(levelname)s] %(message)s" if not verbose else "[%(levelname)s] %(name)s: %(message)s",
    )
    return logging.getLogger("webtest_agent")


def main() -> None:
    """Main entry point."""
    parser = _build_arg_parser()
    args = parser.parse_args()

    try:
        config = load_config(
            Path(args.config) if args.config else None,
            cli_overrides={
                "browser": args.browser,
                "headful": args.headful,
                "max_steps": args.max_steps,
                "model": args.model,
                "save_trace": False if args.no_trace else None,
                "verbose": args.verbose or None,
            },
        )
    except (WebTestError, ValueError) as exc:
        logger = _setup_logging(args.verbose, args.quiet)
        logger.error(f"Error: {exc}")
        sys.exit(1)

    logger = _setup_logging(config.verbose, args.quiet)

    if not config.agent.api_key:
        logger.error("Error: WEBTEST_API_KEY environment variable is required")
        logger.error("Set it in your .env file, export it in your shell, or put agent.api_key in the config file")
        sys.exit(1)

    task = " ".join(args.task)
    try:
        exit_code = asyncio.run(run_task(task, config, logger))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        exit_code = 130
    except Exception as exc:
        logger.exception(f"Unexpected error: {exc}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
