import argparse
import contextlib
import logging
import sys

import tqdm

import enigma
import enigma_config

logger = logging.getLogger(__name__)


def run(config_file, input_file, output_file, show_progress: bool = False):
    with open(config_file, 'r') as file_:
        machine = enigma_config.read_config(file_.read())

    lines = input_file.readlines()
    logger.info(f'processing {len(lines)} lines with {config_file}')
    for out_line in enigma_config.process_messages(machine, tqdm.tqdm(lines, disable=not show_progress)):
        output_file.write(out_line + '\n')


def main(argv=None):
    parser = argparse.ArgumentParser(description='Rotor cipher machine simulator')
    parser.add_argument('config', help='machine configuration file')
    parser.add_argument('input', nargs='?', help='file with messages (default: stdin)')
    parser.add_argument('output', nargs='?', help='file for the converted messages (default: stdout)')
    parser.add_argument('--progress', action='store_true', help='show a progress bar over the input lines')
    parser.add_argument('--verbose', action='store_true', help='log debug messages')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    with contextlib.ExitStack() as stack:
        try:
            input_file = stack.enter_context(open(args.input, 'r')) if args.input else sys.stdin
            output_file = stack.enter_context(open(args.output, 'w')) if args.output else sys.stdout
            run(args.config, input_file, output_file, show_progress=args.progress)
        except OSError as excp:
            print(f'Error: could not open {excp.filename}', file=sys.stderr)
            return 1
        except enigma.EnigmaError as excp:
            print(f'Error: {excp}', file=sys.stderr)
            return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
