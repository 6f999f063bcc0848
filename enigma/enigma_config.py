import logging

from enigma import Alphabet, ConfigError, EnigmaError, Machine, Permutation, Rotor, RotorKind

logger = logging.getLogger(__name__)

GROUP_SIZE = 5
RANGE_SEPARATOR = '-'


class TokenStream:
    """
    whitespace separated tokens of a text that can be looked at before they are consumed.
    """

    def __init__(self, text: str):
        self.tokens = text.split()
        self.pos = 0

    def __iter__(self):
        return self

    def __next__(self):
        if self.pos < len(self.tokens):
            token = self.tokens[self.pos]
            self.pos += 1
            return token
        else:
            raise StopIteration

    def peek(self):
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def has_next(self) -> bool:
        return self.pos < len(self.tokens)

    def next_or_fail(self, what: str) -> str:
        if not self.has_next():
            raise ConfigError(f'truncated input, expected {what}')
        return next(self)


def parse_alphabet(spec: str) -> Alphabet:
    # "A-Z" is a character range, everything else a literal list of characters
    if len(spec) == 3 and spec[1] == RANGE_SEPARATOR:
        return Alphabet.from_range(spec[0], spec[2])
    return Alphabet(spec)


def _read_int(tokens: TokenStream, what: str) -> int:
    token = tokens.next_or_fail(what)
    try:
        return int(token)
    except ValueError:
        raise ConfigError(f'{what} must be an integer, got {token}')


def read_rotor(tokens: TokenStream, alphabet: Alphabet) -> Rotor:
    name = tokens.next_or_fail('rotor name')
    mobility = tokens.next_or_fail(f'type of rotor {name}')
    if mobility.startswith('('):
        raise ConfigError(f'rotor {name} has no type')

    cycles = []
    while tokens.has_next() and tokens.peek().startswith('('):
        cycles.append(next(tokens))
    permutation = Permutation(' '.join(cycles), alphabet)

    kind_tag, notches = mobility[0], mobility[1:]
    if kind_tag == RotorKind.MOVING.value:
        rotor = Rotor.moving(name, permutation, notches)
    elif kind_tag == RotorKind.FIXED.value and not notches:
        rotor = Rotor.fixed(name, permutation)
    elif kind_tag == RotorKind.REFLECTOR.value and not notches:
        rotor = Rotor.reflector(name, permutation)
    else:
        raise ConfigError(f'bad type {mobility} for rotor {name}')

    logger.debug(f'read {rotor.kind.name.lower()} rotor {name} with cycles {permutation.cycles}')
    return rotor


def read_config(text: str) -> Machine:
    tokens = TokenStream(text)

    alphabet = parse_alphabet(tokens.next_or_fail('alphabet'))
    num_rotors = _read_int(tokens, 'number of rotor slots')
    num_pawls = _read_int(tokens, 'number of pawls')

    rotors = []
    names = set()
    while tokens.has_next():
        rotor = read_rotor(tokens, alphabet)
        if rotor.name.upper() in names:
            raise ConfigError(f'rotor {rotor.name} defined twice')
        names.add(rotor.name.upper())
        rotors.append(rotor)

    logger.debug(f'machine with {num_rotors} slots, {num_pawls} pawls and {len(rotors)} available rotors')
    return Machine(alphabet, num_rotors, num_pawls, rotors)


def setup_machine(machine: Machine, settings: str):
    """
    apply a setting line (without the leading '*') to the machine:
    rotor names (reflector first), initial setting and optional plugboard cycles
    """
    tokens = TokenStream(settings)
    names = [tokens.next_or_fail('rotor name') for _ in range(machine.num_rotors)]

    upper_names = [name.upper() for name in names]
    if len(set(upper_names)) != len(upper_names):
        raise ConfigError(f'a rotor is repeated in {" ".join(names)}')

    if not machine.get_rotor(names[0]).reflecting():
        raise ConfigError(f'first rotor {names[0]} must be a reflector')

    if not tokens.has_next() or tokens.peek().startswith('('):
        raise ConfigError('missing initial rotor setting')
    setting = next(tokens)
    plugboard = Permutation(' '.join(tokens), machine.alphabet)

    machine.clear_rotors()
    try:
        machine.insert_rotors(names)
        machine.set_rotors(setting)
    except EnigmaError:
        # a rejected setting line leaves no rotors behind
        machine.clear_rotors()
        raise
    machine.set_plugboard(plugboard)
    logger.debug(f'machine set up with {" ".join(names)}, settings {machine.settings()}')


def group_message(msg: str, group_size: int = GROUP_SIZE) -> str:
    return ' '.join(msg[i:i + group_size] for i in range(0, len(msg), group_size))


def _normalize_message(line: str, alphabet: Alphabet) -> str:
    msg = ''.join(line.split())
    if not any(char.islower() for char in alphabet.chars):
        msg = msg.upper()
    return msg


def process_messages(machine: Machine, lines):
    """
    generator over the output lines for the input lines.
    Lines starting with '*' set the machine up, all others are converted.
    """
    configured = False
    for line in lines:
        line = line.rstrip('\n')
        if line.startswith('*'):
            setup_machine(machine, line[1:])
            configured = True
            continue
        if not configured:
            if not line.strip():
                continue
            raise ConfigError('input does not start with a setting line')
        yield group_message(machine.convert(_normalize_message(line, machine.alphabet)))
