import logging
import sys

# Prefer absolute imports (work with PyInstaller); fallback to relative for editors
try:
    from bootnext.cli import build_parser, get_platform, run_cli
    from bootnext.errors import BootNextError, Relaunched
except ImportError:  # pragma: no cover
    from .cli import build_parser, get_platform, run_cli
    from .errors import BootNextError, Relaunched

logger = logging.getLogger('bootnext')


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(levelname)s: %(name)s: %(message)s',
        stream=sys.stderr,
    )


def exit_with_pause(code: int, pause: bool, elevator) -> None:
    if pause:
        try:
            elevator.pause_for_input()
        except BootNextError as exc:
            logger.warning('Could not pause before exiting: %s', exc)
    sys.exit(code)


def run_gui(manager, elevator) -> int:
    # Setting BootNext needs admin/root; trigger elevation with a GUI prompt
    if not elevator.is_elevated():
        raise Relaunched(elevator.run_elevated())

    from PySide6.QtWidgets import QApplication
    from bootnext.gui.app import BootSwitchApp

    app = QApplication(sys.argv)
    w = BootSwitchApp(manager)
    w.show()
    return app.exec()


def main(argv=None):
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]

    # No flags or arguments at all: print the usage message
    if not argv:
        parser.print_help()
        sys.exit(0)

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    manager, elevator = get_platform(gui=args.gui)
    try:
        if args.gui:
            code = run_gui(manager, elevator)
        else:
            code = run_cli(args, manager, elevator)
    except Relaunched as exc:
        # The elevated copy already handled --pause
        sys.exit(exc.code)
    except BootNextError as exc:
        print(f'Error: {exc}', file=sys.stderr)
        code = 1
    exit_with_pause(code, args.pause, elevator)


if __name__ == '__main__':
    main()
