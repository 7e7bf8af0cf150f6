#!/usr/bin/env python3
"""
Feed Engagement Assistant - Hauptprogramm
Scores posts of a social feed, shows badges and quick actions in the browser
"""

import argparse
import asyncio
import logging
import re
import sys
import traceback
from typing import List, Optional

import background
from analysis import build_report, genre_frame, plot_report
from config import Config
from models import AI_PROVIDERS, UserSettings
from scraper import FeedAssistant, FeedProcessor, logger, scan_feed
from storage import StorageManager

DEFAULT_MIN_SCORE = 70
DEFAULT_MIN_FOLLOWERS = 50
LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")


def parse_list(value: str) -> List[str]:
    """Kommagetrennte Liste -> getrimmte Einträge ohne Leerstrings"""
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def parse_int(value: Optional[str], default: int) -> int:
    """Führende Ganzzahl ("60点" -> 60, "12.5" -> 12); 0 oder ungültig -> default"""
    match = LEADING_INT_PATTERN.match(value or "")
    if not match:
        return default
    return int(match.group(1)) or default


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Feed Engagement Assistant (Playwright + Regel-Scoring)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Beispiele:
  python main.py run                          # Feed öffnen und Posts bewerten
  python main.py run --max-posts 50           # Stoppe nach 50 Posts
  python main.py scan feed.html --annotate out.html
  python main.py stats                        # Statistik anzeigen
  python main.py settings set --keywords "AI, Python" --min-score 60
  python main.py clear --yes                  # Alle Daten löschen
        """
    )

    parser.add_argument(
        '--data-dir',
        type=str,
        default=str(Config.DATA_DIR),
        help=f'Datenverzeichnis (Standard: {Config.DATA_DIR}/)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Debug-Modus aktivieren (mehr Logs)'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    # run
    run_parser = commands.add_parser('run', help='Feed im Browser beobachten')
    run_parser.add_argument('--url', type=str, default=Config.FEED_URL, help='Feed-URL')
    run_parser.add_argument(
        '--max-posts',
        type=int,
        default=Config.MAX_POSTS,
        help=f'Maximale Anzahl Posts (Standard: {Config.MAX_POSTS if Config.MAX_POSTS else "unbegrenzt"})'
    )
    run_parser.add_argument('--duration', type=float, default=None, help='Laufzeit in Sekunden')
    run_parser.add_argument('--headless', action='store_true', default=Config.HEADLESS,
                            help='Browser im Hintergrund ausführen')
    run_parser.add_argument('--no-scroll', action='store_true', help='Nicht automatisch scrollen')

    # scan
    scan_parser = commands.add_parser('scan', help='URL oder HTML-Datei statisch bewerten')
    scan_parser.add_argument('source', help='URL oder Pfad zu einer HTML-Datei')
    scan_parser.add_argument('--min-score', type=int, default=None,
                             help='Nur Posts ab dieser Score anzeigen (Standard: aus Einstellungen)')
    scan_parser.add_argument('--annotate', type=str, default=None,
                             help='Annotiertes HTML in diese Datei schreiben')

    # stats / history / report
    commands.add_parser('stats', help='Statistik anzeigen')
    history_parser = commands.add_parser('history', help='Aktionsverlauf anzeigen')
    history_parser.add_argument('--limit', type=int, default=20)
    report_parser = commands.add_parser('report', help='Auswertung als PNG schreiben')
    report_parser.add_argument('--output', type=str, default=None)

    # settings
    settings_parser = commands.add_parser('settings', help='Einstellungen anzeigen/ändern')
    settings_commands = settings_parser.add_subparsers(dest='settings_command', required=True)
    settings_commands.add_parser('show')
    set_parser = settings_commands.add_parser('set')
    set_parser.add_argument('--target-genres', type=str)
    set_parser.add_argument('--keywords', type=str)
    set_parser.add_argument('--exclude-keywords', type=str)
    set_parser.add_argument('--min-score', type=str)
    set_parser.add_argument('--min-followers', type=str)
    set_parser.add_argument('--language', type=str)
    set_parser.add_argument('--ai-provider', type=str, choices=AI_PROVIDERS)
    set_parser.add_argument('--api-key', type=str)

    # clear
    clear_parser = commands.add_parser('clear', help='Alle Daten löschen')
    clear_parser.add_argument('--yes', action='store_true', help='Ohne Rückfrage löschen')

    return parser


# ========================================
# BEFEHLE
# ========================================

def cmd_run(args, storage: StorageManager) -> int:
    Config.HEADLESS = args.headless
    if args.no_scroll:
        Config.AUTO_SCROLL = False

    logger.info("=" * 60)
    logger.info("FEED ENGAGEMENT ASSISTANT GESTARTET")
    logger.info("=" * 60)
    logger.info(f"Feed URL: {args.url}")
    logger.info(f"Max Posts: {args.max_posts if args.max_posts else 'unbegrenzt'}")
    logger.info(f"Headless: {Config.HEADLESS}")
    logger.info("=" * 60)

    async def _run() -> int:
        async with FeedAssistant(storage) as assistant:
            if not await assistant.load_feed(args.url):
                return 1
            count = await assistant.poll(max_posts=args.max_posts, duration=args.duration)
            logger.info(f"{count} Posts analysiert")
            return 0

    return asyncio.run(_run())


def cmd_scan(args, storage: StorageManager) -> int:
    processor = FeedProcessor(storage)
    results = asyncio.run(scan_feed(args.source, processor, annotate_to=args.annotate))
    if not results:
        logger.warning("Keine Posts gefunden!")
        return 1

    threshold = args.min_score if args.min_score is not None else processor.analyzer.settings.min_score
    selected = sorted(
        (item for item in results if item[1].score >= threshold),
        key=lambda item: item[1].score,
        reverse=True,
    )

    print("\n" + "=" * 60)
    print(f"POSTS AB {threshold} PUNKTEN ({len(selected)} von {len(results)})")
    print("=" * 60)
    for post, analysis in selected:
        preview = " ".join(post.content.split())[:60]
        print(f"{analysis.score:3d}  {analysis.genre:10s}  @{post.author_handle or post.author}: {preview}")
        print(f"     {analysis.reason}")
    print("=" * 60)
    return 0


def cmd_stats(args, storage: StorageManager) -> int:
    stats = background.dispatch(storage, {"type": "get_statistics"})
    if isinstance(stats, dict):
        print(f"Fehler: {stats.get('error')}")
        return 1

    print("\n" + "=" * 60)
    print("STATISTIK")
    print("=" * 60)
    print(f"Analysierte Posts:  {stats.total_analyzed:,}")
    print(f"Likes:              {stats.total_liked:,}")
    print(f"Retweets:           {stats.total_retweeted:,}")
    print(f"Durchschnitt:       {stats.average_score}点")

    print("\nGenres:")
    top_genres = sorted(stats.genre_distribution.items(), key=lambda x: x[1], reverse=True)[:5]
    if not top_genres:
        print("   データがありません")
    for genre, count in top_genres:
        print(f"   {genre:12s} {count:4d}件")
    print("=" * 60)
    return 0


def cmd_history(args, storage: StorageManager) -> int:
    history = background.dispatch(storage, {"type": "get_history"})
    if isinstance(history, dict):
        print(f"Fehler: {history.get('error')}")
        return 1

    for entry in history[-args.limit:]:
        print(f"{entry.timestamp:%Y-%m-%d %H:%M}  {entry.action:8s}  {entry.post_id}  "
              f"{entry.score:3d}  {entry.genre}")
    if not history:
        print("Kein Verlauf vorhanden")
    return 0


def cmd_report(args, storage: StorageManager) -> int:
    report = build_report(storage)
    for key, value in report.items():
        print(f"{key:16s} {value}")
    for n, row in enumerate(genre_frame(storage).to_dict("records"), start=1):
        print(f"#{n:<3d} {row['genre']} ({row['count']})")
    path = plot_report(storage, args.output or Config.REPORT_PATH)
    print(f"\nGrafik gespeichert: {path}")
    return 0


def cmd_settings(args, storage: StorageManager) -> int:
    settings: UserSettings = background.dispatch(storage, {"type": "get_settings"})
    if isinstance(settings, dict):
        print(f"Fehler: {settings.get('error')}")
        return 1

    if args.settings_command == 'set':
        if args.target_genres is not None:
            settings.target_genres = parse_list(args.target_genres)
        if args.keywords is not None:
            settings.keywords = parse_list(args.keywords)
        if args.exclude_keywords is not None:
            settings.exclude_keywords = parse_list(args.exclude_keywords)
        if args.min_score is not None:
            settings.min_score = parse_int(args.min_score, DEFAULT_MIN_SCORE)
        if args.min_followers is not None:
            settings.min_followers = parse_int(args.min_followers, DEFAULT_MIN_FOLLOWERS)
        if args.language is not None:
            settings.language = args.language
        if args.ai_provider is not None:
            settings.ai_provider = args.ai_provider
        if args.api_key is not None:
            settings.api_key = args.api_key or None

        result = background.dispatch(storage, {"type": "save_settings", "data": settings})
        if not result.get("success"):
            print(f"Einstellungen konnten nicht gespeichert werden: {result.get('error')}")
            return 1
        print("Einstellungen gespeichert")

    print(f"Ziel-Genres:        {', '.join(settings.target_genres)}")
    print(f"Schlüsselwörter:    {', '.join(settings.keywords)}")
    print(f"Ausschlusswörter:   {', '.join(settings.exclude_keywords)}")
    print(f"Min. Score:         {settings.min_score}")
    print(f"Min. Follower:      {settings.min_followers}")
    print(f"Sprache:            {settings.language}")
    print(f"AI-Provider:        {settings.ai_provider}")
    return 0


def cmd_clear(args, storage: StorageManager) -> int:
    if not args.yes:
        answer = input("Alle Daten löschen? Das kann nicht rückgängig gemacht werden. [j/N] ")
        if answer.strip().lower() not in ("j", "ja", "y", "yes"):
            print("Abgebrochen")
            return 0

    result = background.dispatch(storage, {"type": "clear_data"})
    if not result.get("success"):
        print(f"Daten konnten nicht gelöscht werden: {result.get('error')}")
        return 1
    print("Daten gelöscht")
    return 0


COMMANDS = {
    'run': cmd_run,
    'scan': cmd_scan,
    'stats': cmd_stats,
    'history': cmd_history,
    'report': cmd_report,
    'settings': cmd_settings,
    'clear': cmd_clear,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Hauptfunktion"""
    args = build_parser().parse_args(argv)

    # ========================================
    # LOGGING KONFIGURATION
    # ========================================
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.info("Debug-Modus aktiviert")

    # ========================================
    # DATENVERZEICHNIS
    # ========================================
    Config.use_data_dir(args.data_dir)
    Config.setup_directories()
    logger.debug(f"Datenverzeichnis: {Config.DATA_DIR.absolute()}")

    try:
        storage = StorageManager(Config.DB_PATH)
        background.ensure_installed(storage, Config.VERSION)
        return COMMANDS[args.command](args, storage)

    except KeyboardInterrupt:
        logger.warning("\nDurch Benutzer abgebrochen (Ctrl+C)")
        return 130

    except Exception as e:
        logger.error(f"\nKritischer Fehler: {e}")
        logger.error(traceback.format_exc())
        return 1


def run():
    """Entry Point für das Programm"""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nProgramm abgebrochen")
        sys.exit(130)


if __name__ == '__main__':
    run()
