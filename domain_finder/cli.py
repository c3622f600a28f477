"""
Command-line interface for the domain resolver.

Reads company names from a spreadsheet (or the command line), resolves
each to a domain and writes a Company/Domain table.
"""
import argparse
import asyncio
import logging
import os
import sys
import time
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from domain_finder.candidates import looks_like_company_name
from domain_finder.config import Config, config, ConfigurationError
from domain_finder.orchestrator import Orchestrator, Resolution
from domain_finder.search_fallback import SearchFallback

# Initialize logger
log = logging.getLogger(__name__)

INPUT_EXTENSIONS = (".xlsx", ".xls", ".csv")
OUTPUT_EXTENSIONS = (".xlsx", ".csv")


class CLIError(Exception):
    """Raised for unusable input files."""
    pass

class CLI:
    """Command-line interface around the orchestrator."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Resolve company names to their official web domains",
        )

        parser.add_argument(
            "input_file",
            nargs="?",
            help="Input Excel/CSV file with a 'Company' column"
        )

        parser.add_argument(
            "-o", "--output",
            dest="output_file",
            help="Output Excel/CSV file for results"
        )

        parser.add_argument(
            "-n", "--name",
            dest="names",
            action="append",
            default=[],
            help="Company name to resolve (repeatable)"
        )

        parser.add_argument(
            "-v", "--verbose",
            action="store_true",
            help="Log per-candidate detail (DEBUG)"
        )

        parser.add_argument(
            "--workers",
            type=int,
            help="Companies resolved concurrently (default: MAX_WORKERS)"
        )

        parser.add_argument(
            "--timeout",
            type=float,
            help="Deadline per company in seconds, 0 disables (default: RESOLVE_TIMEOUT)"
        )

        parser.add_argument(
            "--engines",
            help="Comma separated search engines for the fallback (default: SEARCH_ENGINES)"
        )

        parser.add_argument(
            "--manual-captcha",
            action="store_true",
            help="Open a visible browser and wait indefinitely for challenges to be solved"
        )

        parser.add_argument(
            "--captcha-timeout",
            type=float,
            help="Seconds to wait for a challenge to be solved (default: CAPTCHA_TIMEOUT)"
        )

        parser.add_argument(
            "--config",
            help=".env file overriding the environment"
        )

        return parser

    def validate_input_file(self, file_path: str) -> Tuple[bool, Optional[str]]:
        """
        Check the input spreadsheet exists and has a supported extension.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not os.path.isfile(file_path):
            return False, f"Input file not found: {file_path}"

        if not file_path.lower().endswith(INPUT_EXTENSIONS):
            return False, f"Input file must be .xlsx, .xls or .csv: {file_path}"

        return True, None

    def validate_output_file(self, file_path: str) -> Tuple[bool, Optional[str]]:
        """
        Check the output path has a supported extension and is writable.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not file_path.lower().endswith(OUTPUT_EXTENSIONS):
            return False, f"Output file must be .xlsx or .csv: {file_path}"

        output_dir = os.path.dirname(file_path)
        if output_dir and not os.path.isdir(output_dir):
            return False, f"Output directory does not exist: {output_dir}"

        if os.path.exists(file_path):
            if not os.access(file_path, os.W_OK):
                return False, f"Output file is not writable: {file_path}"
        elif not os.access(output_dir or ".", os.W_OK):
            return False, f"Cannot write to output directory: {output_dir or '.'}"

        return True, None

    def load_companies(self, file_path: str) -> List[str]:
        """
        Load company names from the 'Company' column, dropping junk rows.

        Raises:
            CLIError: If the file cannot be read or lacks the column
        """
        try:
            if file_path.lower().endswith(".csv"):
                df = pd.read_csv(file_path)
            else:
                df = pd.read_excel(file_path)
        except Exception as e:
            raise CLIError(f"Error reading input file: {e}") from e

        if "Company" not in df.columns:
            raise CLIError(f"Input file must have 'Company' column: {file_path}")

        return self.select_companies(df["Company"].dropna().astype(str))

    def select_companies(self, names: Iterable[str]) -> List[str]:
        """Trim names, drop list noise and duplicates, keep first-seen order."""
        stripped = [n.strip() for n in names]
        kept = [n for n in stripped if looks_like_company_name(n)]
        if len(kept) < len(stripped):
            log.info("Skipped %d entries that do not look like company names", len(stripped) - len(kept))
        return list(dict.fromkeys(kept))

    def save_results(self, results: List[Resolution], file_path: str) -> None:
        df_out = pd.DataFrame(
            [{"Company": r.name, "Domain": r.domain} for r in results],
            columns=["Company", "Domain"],
        )
        if file_path.lower().endswith(".csv"):
            df_out.to_csv(file_path, index=False)
        else:
            df_out.to_excel(file_path, index=False)
        log.info("Saved %d rows -> %s", len(df_out), file_path)

    def setup_logging(self, verbose: bool) -> str:
        """
        Log to a timestamped file and to stdout.

        Returns:
            Path to log file
        """
        logfile = f"domain_finder_{time.strftime('%Y%m%d_%H%M%S')}.log"
        level = logging.DEBUG if verbose else logging.INFO

        logging.basicConfig(
            level=level,
            format="%(asctime)s | %(levelname)-7s | %(name)-20s | %(message)s",
            handlers=[
                logging.FileHandler(logfile, encoding="utf-8"),
                logging.StreamHandler(sys.stdout)
            ]
        )

        # third-party loggers are noisy at INFO
        logging.getLogger("aiohttp").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)
        logging.getLogger("playwright").setLevel(logging.WARNING)

        return logfile

    def apply_options(self, args: argparse.Namespace) -> None:
        if args.config:
            config.update_from_dict(Config(env_file=args.config).as_dict())
        if args.workers is not None:
            config.max_workers = max(1, args.workers)
        if args.timeout is not None:
            config.resolve_timeout = max(0.0, args.timeout)
        if args.engines:
            config.search_engines = [e.strip().lower() for e in args.engines.split(",") if e.strip()]
        if args.captcha_timeout is not None:
            config.captcha_timeout = max(1.0, args.captcha_timeout)
        if args.manual_captcha:
            config.manual_captcha = True
            config.browser_headless = False

    async def resolve_companies(self, companies: List[str]) -> Tuple[List[Resolution], Orchestrator]:
        orchestrator = Orchestrator(
            search_fallback=SearchFallback(engines=config.search_engines),
            max_workers=config.max_workers,
        )
        async with orchestrator:
            results = await orchestrator.resolve_all(companies)
        return results, orchestrator

    def resolve(self, args: argparse.Namespace) -> bool:
        """
        Resolve every company named on the command line or in the input file.

        Returns:
            False when input, configuration or output handling failed
        """
        logfile = self.setup_logging(args.verbose)
        self.apply_options(args)

        try:
            config.validate_or_raise()
        except ConfigurationError as e:
            log.error("Configuration error: %s", e)
            return False

        names = list(args.names)
        if args.input_file:
            valid_input, input_error = self.validate_input_file(args.input_file)
            if not valid_input:
                log.error("Input validation failed: %s", input_error)
                return False
            try:
                names.extend(self.load_companies(args.input_file))
            except CLIError as e:
                log.error("%s", e)
                return False

        companies = self.select_companies(names)
        if not companies:
            log.error("No company names given (use an input file or --name)")
            return False

        if args.output_file:
            valid_output, output_error = self.validate_output_file(args.output_file)
            if not valid_output:
                log.error("Output validation failed: %s", output_error)
                return False

        log.info("Domain finder starting")
        log.info("Companies: %d", len(companies))
        log.info("Workers: %d", config.max_workers)
        log.info("Search engines: %s", ", ".join(config.search_engines))
        log.info("Manual captcha: %s", config.manual_captcha)

        start_time = time.time()
        results, orchestrator = asyncio.run(self.resolve_companies(companies))

        for r in results:
            log.info("%s -> %s", r.name, r.domain or "not found")

        if args.output_file:
            try:
                self.save_results(results, args.output_file)
            except Exception as e:
                log.error("Failed to save output file: %s", e)
                return False

        elapsed = time.time() - start_time
        stats = orchestrator.global_stats
        http_stats = orchestrator.http_client.stats
        search_stats = orchestrator.search_fallback.stats

        log.info(
            "\n+--------------------------------------------------+\n"
            "| RUN SUMMARY                                      |\n"
            "+--------------------------------------------------+\n"
            f"| Companies       : {stats['leads']:>3}\n"
            f"| Guessed         : {stats['guess_found']:>3}\n"
            f"| Search used     : {stats['search_used']:>3}\n"
            f"| Found by search : {stats['search_found']:>3}\n"
            f"| Not found       : {stats['not_found'] + stats['empty_name']:>3}\n"
            f"| Timed out       : {stats['timeout']:>3}\n"
            f"| Errors          : {stats['error']:>3}\n"
            f"| Challenges      : {search_stats['captcha']:>3}\n"
            f"| Engine failures : {search_stats['engine_error'] + search_stats['captcha_timeout']:>3}\n"
            f"| HEAD requests   : {http_stats['probe_requests']:>3}\n"
            f"| GET requests    : {http_stats['fetch_requests']:>3}\n"
            f"| Runtime         : {elapsed:6.1f} s\n"
            "+--------------------------------------------------+"
        )
        log.info("Verbose log -> %s", Path(logfile).resolve())

        return True

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Parse arguments (sys.argv when None) and resolve.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            parsed_args = self.parser.parse_args(args)
            success = self.resolve(parsed_args)
            return 0 if success else 1

        except Exception as e:
            log.error("Unhandled exception: %s", e, exc_info=True)
            return 1

def main() -> int:
    """
    Console entry point.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    cli = CLI()

    try:
        return cli.run()

    except KeyboardInterrupt:
        log.warning("Execution interrupted by user")
        return 1
