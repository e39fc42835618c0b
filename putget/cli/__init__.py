"""The cli package exposes the conformance matrix as command line
utilities. Each module in this package (other than this one) is a
subcommand providing ``setup_parser(parser)`` and ``main(args)``.
"""
import argparse
import logging
import importlib
import sys


logger = logging.getLogger(__name__)



class CustomHelpFormatter(argparse.HelpFormatter):
    def _format_action(self, action):
        if type(action) == argparse._SubParsersAction:
            help_text = ""
            for name, choice in action.choices.items():
                help_text += "  {:21} {}\n".format(name, choice.description)
            return help_text

        return super(CustomHelpFormatter, self)._format_action(action)



def discover_subcommands():
    """
    Find the subcommand modules shipped in putget.cli.

    Returns:
        list of subcommand names, sorted
    """
    import os
    import glob
    import putget.cli

    subcommands = []

    paths = glob.glob(putget.cli.__path__[0] + "/*.py")
    for path in paths:
        base = os.path.basename(path)
        name = os.path.splitext(base)[0]

        if name in ['__init__', '__main__']:
            continue

        subcommands.append(name)

    return sorted(subcommands)



def setup_logging(level=None, debug=False):
    """Configure the root logger from --log-level / --debug."""
    if debug:
        level = "debug"
    if level is None:
        level = "warning"
    logging.basicConfig(level=getattr(logging, level.upper()),
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")



def main(argv=None):
    """
    putget CLI wrapper, to expose individual commands as subcommands.

    Returns the exit status of the subcommand.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(prog="putget", usage="putget <command>",
                                     description='putget storage conformance utilities',
                                     formatter_class=CustomHelpFormatter)

    # Shared Optional Arguments
    optionals = parser.add_argument_group()
    optionals.add_argument("--log-level", dest="log_level", type=str.lower,
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='Set logging level')
    optionals.add_argument('--debug', help='verbose logging', action='store_true', default=False)
    optionals.add_argument('--version', help='print version and exit', action='store_true', default=False)

    # setup parser for sub-commands
    subparsers = parser.add_subparsers(dest='action')

    # custom help messge
    parser._positionals.title = "commands"

    subcmds = discover_subcommands()
    for subcmd in subcmds:
        subcmd_parser = subparsers.add_parser(subcmd)

        mod = importlib.import_module('putget.cli.{0}'.format(subcmd))
        mod.setup_parser(subcmd_parser)

    args = parser.parse_args(argv)

    if args.version:
        import putget
        print(putget.__version__)
        return 0

    setup_logging(args.log_level, args.debug)
    if args.debug:
        logger.debug(args)

    # default behavior when no command provided: show help
    if args.action is None:
        parser.print_help()
        return 0

    mod = importlib.import_module('putget.cli.{0}'.format(args.action))
    return mod.main(args)



if __name__ == "__main__":
    sys.exit(main())
