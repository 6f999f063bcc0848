import enum
import string

import numpy as np


class EnigmaError(ValueError):
    pass


class MalformedCycleSpec(EnigmaError):
    pass


class PawlMismatch(EnigmaError):
    pass


class InvalidReflector(EnigmaError):
    pass


class UnknownRotor(EnigmaError):
    pass


class ConfigError(EnigmaError):
    pass


class Alphabet:
    def __init__(self, chars: str = string.ascii_uppercase):
        if len(set(chars)) != len(chars):
            raise EnigmaError(f'alphabet {chars} contains duplicate characters')
        if len(chars) == 0:
            raise EnigmaError('alphabet must not be empty')
        self.chars = chars
        self.char_to_number_map = dict()
        for i, char in enumerate(self.chars):
            self.char_to_number_map[char] = i

    @classmethod
    def from_range(cls, first: str, last: str):
        if ord(first) > ord(last):
            raise EnigmaError(f'bad character range {first}-{last}')
        return cls(''.join(chr(c) for c in range(ord(first), ord(last) + 1)))

    @property
    def size(self) -> int:
        return len(self.chars)

    def __len__(self):
        return self.size

    def __contains__(self, char):
        return char in self.char_to_number_map

    def to_char(self, index: int) -> str:
        if not 0 <= index < self.size:
            raise EnigmaError(f'index {index} out of range 0-{self.size - 1}')
        return self.chars[index]

    def to_int(self, char: str) -> int:
        try:
            return self.char_to_number_map[char]
        except KeyError:
            raise EnigmaError(f'character {char!r} is not in the alphabet {self.chars}')

    def __repr__(self):
        return f'Alphabet({self.chars!r})'


class Permutation:
    """
    Permutation of the characters of an alphabet, given in cycle notation.
    e.g. "(ABC) (DE)" maps A->B, B->C, C->A, D->E, E->D.
    Characters that are not part of any cycle map to themselves, whitespace is ignored.
    """

    def __init__(self, cycles: str, alphabet: Alphabet):
        self.alphabet = alphabet
        self.cycles = cycles
        self._forward = dict()
        self._backward = dict()

        for cycle in self._split_cycles(cycles):
            self._add_cycle(cycle)

        # index lookup tables, position i holds the image of character i
        positions = np.arange(alphabet.size)
        self.forward = positions.copy()
        self.backward = positions.copy()
        for char, image in self._forward.items():
            self.forward[alphabet.to_int(char)] = alphabet.to_int(image)
            self.backward[alphabet.to_int(image)] = alphabet.to_int(char)

    @classmethod
    def identity(cls, alphabet: Alphabet):
        return cls('', alphabet)

    @staticmethod
    def _split_cycles(cycles: str) -> list:
        result = []
        pos = 0
        while pos < len(cycles):
            char = cycles[pos]
            if char.isspace():
                pos += 1
            elif char == '(':
                end = cycles.find(')', pos)
                if end == -1:
                    raise MalformedCycleSpec(f'no closing parenthesis in {cycles!r}')
                result.append(cycles[pos + 1:end])
                pos = end + 1
            else:
                raise MalformedCycleSpec(f'unexpected {char!r} outside of a cycle in {cycles!r}')
        return result

    def _add_cycle(self, cycle: str):
        cycle = ''.join(cycle.split())
        for char in cycle:
            if char not in self.alphabet:
                raise MalformedCycleSpec(f'{char!r} in cycle ({cycle}) is not in the alphabet')
            if char in self._forward:
                raise MalformedCycleSpec(f'{char!r} appears in more than one place of {self.cycles!r}')
            # reserve the slot so duplicates inside the same cycle are caught as well
            self._forward[char] = char
        for first, second in zip(cycle, cycle[1:] + cycle[:1]):
            self._forward[first] = second
            self._backward[second] = first

    @property
    def size(self) -> int:
        return self.alphabet.size

    def permute(self, p):
        if isinstance(p, str):
            return self._forward.get(p, p)
        return int(self.forward[p % self.size])

    def invert(self, c):
        if isinstance(c, str):
            return self._backward.get(c, c)
        return int(self.backward[c % self.size])

    def derangement(self) -> bool:
        return bool(np.all(self.forward != np.arange(self.size)))

    def __repr__(self):
        return f'Permutation({self.cycles!r})'


def random_cycles(alphabet: Alphabet, seed: int) -> str:
    rng = np.random.default_rng(seed)
    perm_forward = rng.permutation(alphabet.size).tolist()

    seen = set()
    cycles = []
    for start in range(alphabet.size):
        if start in seen:
            continue
        cycle = ''
        el = start
        while el not in seen:
            seen.add(el)
            cycle += alphabet.to_char(el)
            el = perm_forward[el]
        cycles.append(f'({cycle})')
    return ' '.join(cycles)


def random_swap_cycles(alphabet: Alphabet, n_swaps: int, seed: int) -> str:
    if n_swaps > alphabet.size // 2:
        raise ValueError(f'cannot place {n_swaps} swaps on {alphabet.size} characters')
    rng = np.random.default_rng(seed)
    elements = list(alphabet.chars)

    # random input jacks of the board
    firsts = rng.choice(elements, size=n_swaps, replace=False)
    for el in firsts:
        elements.remove(el)

    # random output jacks
    seconds = rng.choice(elements, size=n_swaps, replace=False)

    return ' '.join(f'({first}{second})' for first, second in zip(firsts, seconds))


class RotorKind(enum.Enum):
    REFLECTOR = 'R'
    FIXED = 'N'
    MOVING = 'M'


class Rotor:
    """
    A rotor of the machine. Reflectors and fixed rotors never rotate,
    moving rotors advance and carry notches that make their left neighbour step.
    """

    def __init__(self, name: str, permutation: Permutation, kind: RotorKind = RotorKind.FIXED, notches: str = ''):
        self.name = name
        self.permutation = permutation
        self.kind = kind
        self.setting = 0

        if kind == RotorKind.REFLECTOR and not permutation.derangement():
            raise InvalidReflector(f'permutation of reflector {name} is not a derangement')
        if kind != RotorKind.MOVING and notches:
            raise EnigmaError(f'rotor {name} does not rotate and cannot have notches')
        for notch in notches:
            if notch not in permutation.alphabet:
                raise EnigmaError(f'notch {notch!r} of rotor {name} is not in the alphabet')
        self.notches = set(notches)

    @classmethod
    def reflector(cls, name: str, permutation: Permutation):
        return cls(name, permutation, RotorKind.REFLECTOR)

    @classmethod
    def fixed(cls, name: str, permutation: Permutation):
        return cls(name, permutation, RotorKind.FIXED)

    @classmethod
    def moving(cls, name: str, permutation: Permutation, notches: str):
        return cls(name, permutation, RotorKind.MOVING, notches)

    @property
    def alphabet(self) -> Alphabet:
        return self.permutation.alphabet

    @property
    def size(self) -> int:
        return self.permutation.size

    def rotates(self) -> bool:
        return self.kind == RotorKind.MOVING

    def reflecting(self) -> bool:
        return self.kind == RotorKind.REFLECTOR

    def at_notch(self) -> bool:
        if self.kind == RotorKind.MOVING:
            return self.alphabet.to_char(self.setting) in self.notches
        return False

    def advance(self):
        if self.kind == RotorKind.MOVING:
            self.setting = (self.setting + 1) % self.size

    def set(self, position):
        if isinstance(position, str):
            self.setting = self.alphabet.to_int(position)
        else:
            self.setting = position % self.size

    def setting_char(self) -> str:
        return self.alphabet.to_char(self.setting)

    def convert_forward(self, p: int) -> int:
        input_ = (self.setting + p) % self.size
        perm = self.permutation.permute(input_)
        return (perm - self.setting + self.size) % self.size

    def convert_backward(self, e: int) -> int:
        input_ = (self.setting + e) % self.size
        perm = self.permutation.invert(input_)
        return (perm - self.setting + self.size) % self.size

    def __repr__(self):
        return f'<Rotor {self.name} {self.kind.name.lower()} setting={self.setting_char()}>'


class Machine:
    def __init__(self, alphabet: Alphabet, num_rotors: int, num_pawls: int, all_rotors):
        if num_rotors <= 1:
            raise EnigmaError(f'a machine needs more than one rotor slot, got {num_rotors}')
        if not 0 <= num_pawls < num_rotors:
            raise EnigmaError(f'number of pawls {num_pawls} must be in [0, {num_rotors})')
        self.alphabet = alphabet
        self.num_rotors = num_rotors
        self.num_pawls = num_pawls

        # all available rotors, the slots hold indices into this list
        self.rotors = list(all_rotors)
        names = [rot.name.upper() for rot in self.rotors]
        if len(set(names)) != len(names):
            raise EnigmaError('rotor names must be unique')
        for rot in self.rotors:
            if rot.size != alphabet.size:
                raise EnigmaError(f'rotor {rot.name} does not have the same number of positions as the alphabet')

        self._slots = num_rotors * [None]
        self.plugboard = None

    def _find_rotor(self, name: str) -> int:
        for idx, rot in enumerate(self.rotors):
            if rot.name.upper() == name.upper():
                return idx
        raise UnknownRotor(f'no rotor named {name}')

    def _slot(self, i: int) -> Rotor:
        return self.rotors[self._slots[i]]

    def slots(self) -> list:
        return [self.rotors[idx] for idx in self._slots if idx is not None]

    def get_rotor(self, name: str) -> Rotor:
        return self.rotors[self._find_rotor(name)]

    def insert_rotors(self, names):
        if len(names) != self.num_rotors:
            raise EnigmaError(f'expected {self.num_rotors} rotor names, got {len(names)}')
        # nothing is installed unless the whole set of rotors is valid
        indices = [self._find_rotor(name) for name in names]
        n_moving = sum(self.rotors[idx].rotates() for idx in indices)
        if n_moving != self.num_pawls:
            raise PawlMismatch(f'number of moving rotors ({n_moving}) does not match pawls ({self.num_pawls})')

        self._slots = indices
        for idx in indices:
            self.rotors[idx].set(0)

    def clear_rotors(self):
        self._slots = self.num_rotors * [None]

    def set_rotors(self, setting: str):
        if len(setting) != self.num_rotors - 1:
            raise EnigmaError(f'setting {setting} must have {self.num_rotors - 1} characters')
        self._check_inserted()
        positions = [self.alphabet.to_int(char) for char in setting]
        for i, pos in enumerate(positions):
            self._slot(i + 1).set(pos)

    def settings(self) -> str:
        return ''.join(rot.setting_char() for rot in self.slots())

    def set_plugboard(self, plugboard):
        if plugboard is not None and plugboard.alphabet.chars != self.alphabet.chars:
            raise EnigmaError('plug board does not use the same alphabet as the machine')
        self.plugboard = plugboard

    def _check_inserted(self):
        if any(idx is None for idx in self._slots):
            raise EnigmaError('rotors have to be inserted first')

    def advance_machine(self):
        # flags are computed from the notch state before anything moves
        needs_step = np.zeros(self.num_rotors, dtype=bool)
        # the reflector never moves, the rightmost rotor moves with every character
        needs_step[-1] = True
        for i in range(self.num_rotors - self.num_pawls, self.num_rotors - 1):
            if self._slot(i).rotates() and self._slot(i + 1).at_notch():
                needs_step[i] = True
                needs_step[i + 1] = True

        for i in np.flatnonzero(needs_step):
            self._slot(i).advance()

    def _convert_index(self, c: int) -> int:
        self.advance_machine()

        if self.plugboard is not None:
            char = self.plugboard.permute(self.alphabet.to_char(c % self.alphabet.size))
            number = self.alphabet.to_int(char)
        else:
            number = c

        for i in range(self.num_rotors - 1, 0, -1):
            number = self._slot(i).convert_forward(number)
        number = self._slot(0).convert_forward(number)
        for i in range(1, self.num_rotors):
            number = self._slot(i).convert_backward(number)

        if self.plugboard is not None:
            number = self.alphabet.to_int(self.plugboard.invert(self.alphabet.to_char(number)))
        return number

    def convert(self, input_):
        """
        encode/decode a single character index or a whole message.
        The rotors keep their settings between calls.
        """
        self._check_inserted()
        if isinstance(input_, str):
            output = str()
            for char in input_:
                output += self.alphabet.to_char(self._convert_index(self.alphabet.to_int(char)))
            return output
        return self._convert_index(input_)
