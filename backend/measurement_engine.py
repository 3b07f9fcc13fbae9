# backend/measurement_engine.py

"""
Measurement Expression Engine

This engine is responsible for:
- Rewriting compound notation (4' 3 7/8", 5 LB 8 OZ) into base-unit literals
- Rewriting fractions and unit-tagged numbers into base-unit literals
- Evaluating the rewritten arithmetic with an explicit parser (no eval)
- Converting the base-unit scalar into the display units of its domain
- Formatting compound results with closest-fraction approximation

This engine MUST NOT:
- Hold session state (history lives in calculator_session)
- Raise past MeasurementEngine.calculate for bad user input
- Perform any I/O

PASS PIPELINE (ORDER IS FIXED):
1) Compound notation   string -> string
2) Fractions           string -> string
3) Units               string -> string
4) Evaluate            string -> float (base unit)

Base units: inch for length, gram for weight.
"""

import logging
import math
import re
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ENGINE_VERSION = "1.0.0"

# ==================== ENUMS ====================

class MeasurementDomain(str, Enum):
    """Supported measurement domains"""
    LENGTH = "length"
    WEIGHT = "weight"


class CalculationStatus(str, Enum):
    """Calculation result status"""
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"  # Empty input, previous display is kept


# ==================== ERROR CLASSES ====================

class CalculationError(Exception):
    """Base calculation error"""
    def __init__(self, error_code: str, message: str, field: Optional[str] = None, severity: str = "HARD_ERROR"):
        self.error_code = error_code
        self.message = message
        self.field = field
        self.severity = severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "field": self.field,
            "severity": self.severity
        }


class UnknownUnitError(CalculationError):
    """Unit not present in the unit table"""
    def __init__(self, unit: str, allowed_units: List[str]):
        super().__init__(
            "UNKNOWN_UNIT",
            f"Unit '{unit}' is not recognized. Allowed units: {', '.join(allowed_units)}",
            field="unit"
        )


class InvalidCompoundNotationError(CalculationError):
    """Malformed feet-inches or pounds-ounces token"""
    def __init__(self, token: str, reason: str):
        super().__init__(
            "INVALID_COMPOUND_NOTATION",
            f"Compound value '{token}' is malformed: {reason}",
            field="expression"
        )


class InvalidFractionError(CalculationError):
    """Standalone fraction with a zero denominator"""
    def __init__(self, fraction: str):
        super().__init__(
            "INVALID_FRACTION",
            f"Fraction '{fraction}' has a zero denominator.",
            field="expression"
        )


class InvalidExpressionError(CalculationError):
    """Sanitized expression cannot be parsed"""
    def __init__(self, expression: str, reason: str):
        super().__init__(
            "INVALID_EXPRESSION",
            f"Cannot evaluate '{expression}': {reason}",
            field="expression"
        )


class DivisionByZeroError(CalculationError):
    """Arithmetic division by zero during evaluation"""
    def __init__(self, expression: str):
        super().__init__(
            "DIVISION_BY_ZERO",
            f"Division by zero in '{expression}'.",
            field="expression"
        )


# ==================== UNIT TABLES ====================

_UNIT_SYMBOL_RE = re.compile(r"^[A-Z]+$")

# Unsigned decimal literal, also accepts ".5" and "5."
NUMBER_PATTERN = r"(?:\d+(?:\.\d*)?|\.\d+)"


class UnitTable:
    """
    Immutable symbol -> ratio mapping against one base unit.

    Symbols are stored upper-case and looked up case-insensitively.
    Table order is preserved; matching_order() is longest-symbol-first so a
    short symbol can never claim part of a longer one.
    """

    def __init__(self, base_symbol: str, ratios: Iterable[Tuple[str, float]]):
        units: Dict[str, float] = {}
        for symbol, ratio in ratios:
            if not _UNIT_SYMBOL_RE.match(symbol):
                raise ValueError(f"Invalid unit symbol '{symbol}'. Symbols must match ^[A-Z]+$")
            if symbol in units:
                raise ValueError(f"Duplicate unit symbol: {symbol}")
            if ratio <= 0:
                raise ValueError(f"Unit '{symbol}' must have a positive ratio. Received: {ratio}")
            units[symbol] = float(ratio)

        if units.get(base_symbol) != 1.0:
            raise ValueError(f"Base unit '{base_symbol}' must be present with ratio 1")

        self.base_symbol = base_symbol
        self._units = MappingProxyType(units)
        # sorted() is stable: equal-length symbols keep table order
        self._matching_order = tuple(sorted(units, key=lambda s: -len(s)))
        self._patterns = MappingProxyType({
            symbol: re.compile(
                rf"(?<![\d.])(?P<number>{NUMBER_PATTERN})\s*{symbol}(?![A-Z])"
            )
            for symbol in units
        })

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.strip().upper() in self._units

    @property
    def symbols(self) -> List[str]:
        return list(self._units)

    def ratio_of(self, symbol: str) -> float:
        """
        Ratio of a unit against the base unit.

        Raises:
            UnknownUnitError: If symbol is not in the table
        """
        ratio = self._units.get((symbol or "").strip().upper())
        if ratio is None:
            raise UnknownUnitError(symbol, self.symbols)
        return ratio

    def matching_order(self) -> Tuple[str, ...]:
        return self._matching_order

    def pattern_for(self, symbol: str) -> "re.Pattern[str]":
        return self._patterns[symbol.upper()]

    def to_base(self, value: float, symbol: str) -> float:
        return value * self.ratio_of(symbol)

    def from_base(self, value: float, symbol: str) -> float:
        return value * self._units[self.base_symbol] / self.ratio_of(symbol)


# All lengths relative to the inch
LENGTH_UNITS = UnitTable(
    base_symbol="IN",
    ratios=(
        ("FT", 12),
        ("IN", 1),
        ("M", 39.3701),
        ("CM", 0.393701),
        ("MM", 0.0393701),
        ("YD", 36),
        ("KM", 39370.1),
        ("MI", 63360),
    ),
)

# All weights relative to the gram
WEIGHT_UNITS = UnitTable(
    base_symbol="G",
    ratios=(
        ("LB", 453.592),
        ("OZ", 28.3495),
        ("KG", 1000),
        ("G", 1),
        ("TON", 1000000),
        ("ST", 6350.29),
        ("CT", 0.2),
    ),
)

INCHES_PER_FOOT = LENGTH_UNITS.ratio_of("FT")
GRAMS_PER_POUND = WEIGHT_UNITS.ratio_of("LB")
GRAMS_PER_OUNCE = WEIGHT_UNITS.ratio_of("OZ")

# ==================== DISPLAY RULES ====================

# Closest-fraction search order doubles as the tie-break
FRACTION_DENOMINATORS: Tuple[int, ...] = (2, 4, 8, 16)
FRACTION_TOLERANCE = 0.001

DISPLAY_PRECISION: Dict[MeasurementDomain, Dict[str, int]] = {
    MeasurementDomain.LENGTH: {
        "inches": 3,
        "millimeters": 1,
        "centimeters": 2,
        "meters": 4,
    },
    MeasurementDomain.WEIGHT: {
        "pounds": 3,
        "ounces": 2,
        "kilograms": 4,
        "grams": 2,
    },
}

# ==================== DATA MODELS ====================

class ConversionResult(BaseModel):
    """Base-unit scalar plus its value in every target unit"""
    model_config = ConfigDict(frozen=True)

    domain: MeasurementDomain
    base_unit: str
    base_value: float
    breakdown: Dict[str, float]


class CalculationResult(BaseModel):
    """Facade output contract"""
    domain: MeasurementDomain
    raw_input: str
    status: CalculationStatus

    base_unit: Optional[str] = None
    base_value: Optional[float] = None
    formatted: Optional[str] = None
    breakdown: Dict[str, float] = Field(default_factory=dict)
    display: Dict[str, str] = Field(default_factory=dict)

    errors: List[Dict[str, Any]] = Field(default_factory=list)

    calculated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    calculation_version: str = ENGINE_VERSION

    @property
    def succeeded(self) -> bool:
        return self.status == CalculationStatus.SUCCESS


# ==================== REWRITE PASSES ====================

def format_literal(value: float, source: str = "") -> str:
    """
    Render a float as a plain decimal literal (never exponent notation).

    The evaluator only accepts digits and a decimal point, so str(1e-05)
    would be silently corrupted by the sanitizer.
    """
    if not math.isfinite(value):
        raise InvalidExpressionError(source or str(value), "value is out of range")
    return format(Decimal(repr(value)), "f")


def _replacement(match: "re.Match[str]", value: float) -> str:
    """Literal for a rewritten token, kept apart from a number that follows it."""
    literal = format_literal(value, match.group(0))
    following = match.string[match.end():match.end() + 1]
    if following and following in "0123456789.":
        literal += " "
    return literal


# Compound fields also take N/D and W N/D so "1/2 LB 3 OZ" collapses as one token
COMPOUND_FIELD_PATTERN = rf"(?:\d+\s+\d+/\d+|\d+/\d+|{NUMBER_PATTERN})"

_FEET_INCHES_RE = re.compile(
    rf"""
    (?<![\d./])(?P<feet>{COMPOUND_FIELD_PATTERN})\s*'
    (?:\s*(?P<whole>{NUMBER_PATTERN})(?![\d./]))?
    (?:\s*(?P<fraction>[^\s"'+\-*/()]+/[^\s"'+\-*/()]*))?
    (?:\s*")?
    """,
    re.VERBOSE,
)

_INCH_FRACTION_RE = re.compile(r"(?P<numerator>\d+)/(?P<denominator>\d+)")

_POUNDS_OUNCES_RE = re.compile(
    rf"(?<![\d./])(?P<pounds>{COMPOUND_FIELD_PATTERN})\s*LB(?![A-Z])\s*(?P<ounces>{COMPOUND_FIELD_PATTERN})\s*OZ(?![A-Z])"
)

# Tight N/D only; "1/2/2" and "1.5/3" are left to the evaluator
_FRACTION_RE = re.compile(
    r"(?<![\d./])(?:(?P<whole>\d+)\s+)?(?P<numerator>\d+)/(?P<denominator>\d+)(?![\d./])"
)


def _compound_field(text: str, token: str) -> float:
    """Value of a compound count: 4, 4.5, 1/2 or 1 1/2."""
    if "/" not in text:
        return float(text)
    parts = text.split()
    numerator, denominator = (int(part) for part in parts[-1].split("/"))
    if denominator == 0:
        raise InvalidCompoundNotationError(token, "zero denominator")
    value = numerator / denominator
    if len(parts) == 2:
        value += int(parts[0])
    return value


def rewrite_feet_inches(expression: str) -> str:
    """
    Collapse feet-inches notation into total inches.

    Accepts 4', 1/2', 4'3", 4' 3.5", 4' 3 7/8" and 4' 7/8". The inches field
    is optional; a feet-only token yields feet * 12.

    Raises:
        InvalidCompoundNotationError: If an embedded fraction is not N/D or
            has a zero denominator
    """
    def _replace(match: "re.Match[str]") -> str:
        token = match.group(0).strip()
        total_inches = _compound_field(match.group("feet"), token) * INCHES_PER_FOOT
        if match.group("whole"):
            total_inches += float(match.group("whole"))
        if match.group("fraction"):
            fraction = _INCH_FRACTION_RE.fullmatch(match.group("fraction"))
            if not fraction:
                raise InvalidCompoundNotationError(token, f"'{match.group('fraction')}' is not a fraction")
            total_inches += _compound_field(fraction.group(0), token)
        return _replacement(match, total_inches)

    rewritten = _FEET_INCHES_RE.sub(_replace, expression)
    if rewritten != expression:
        logger.debug(f"Feet-inches rewrite: '{expression}' -> '{rewritten}'")
    return rewritten


def rewrite_pounds_ounces(expression: str) -> str:
    """
    Collapse '<n> LB <m> OZ' into total grams. Both counts are required.

    Raises:
        InvalidCompoundNotationError: If a count has a zero denominator
    """
    def _replace(match: "re.Match[str]") -> str:
        token = match.group(0).strip()
        total_grams = (
            _compound_field(match.group("pounds"), token) * GRAMS_PER_POUND
            + _compound_field(match.group("ounces"), token) * GRAMS_PER_OUNCE
        )
        return _replacement(match, total_grams)

    rewritten = _POUNDS_OUNCES_RE.sub(_replace, expression)
    if rewritten != expression:
        logger.debug(f"Pounds-ounces rewrite: '{expression}' -> '{rewritten}'")
    return rewritten


def rewrite_fractions(expression: str) -> str:
    """
    Replace N/D (and mixed W N/D) tokens with their decimal value.

    Raises:
        InvalidFractionError: If a fraction has a zero denominator
    """
    def _replace(match: "re.Match[str]") -> str:
        denominator = int(match.group("denominator"))
        if denominator == 0:
            raise InvalidFractionError(match.group(0))
        value = int(match.group("numerator")) / denominator
        if match.group("whole"):
            value += int(match.group("whole"))
        return _replacement(match, value)

    return _FRACTION_RE.sub(_replace, expression)


def rewrite_units(expression: str, units: UnitTable) -> str:
    """
    Replace every '<number><symbol>' with number * ratio.

    Numbers without a recognised unit are left alone (already base unit).
    Expects upper-cased input.
    """
    for symbol in units.matching_order():
        expression = units.pattern_for(symbol).sub(
            lambda match: _replacement(match, units.to_base(float(match.group("number")), symbol)),
            expression,
        )
    return expression


# ==================== EXPRESSION EVALUATOR ====================

_DISALLOWED_CHARS_RE = re.compile(r"[^0-9+\-*/.()\s]")
_TOKEN_RE = re.compile(rf"\s*(?:(?P<number>{NUMBER_PATTERN})|(?P<operator>[-+*/()]))")

Token = Union[float, str]


def sanitize_expression(expression: str) -> str:
    """
    Strip every character outside digits, '.', '+ - * / ( )' and whitespace.

    This is a safety filter, not a validator: if stripping changes the
    meaning of the input the result is simply wrong, not flagged.
    """
    return _DISALLOWED_CHARS_RE.sub("", expression)


def tokenize_expression(expression: str) -> List[Token]:
    tokens: List[Token] = []
    position = 0
    text = expression.rstrip()
    while position < len(text):
        match = _TOKEN_RE.match(text, position)
        if not match:
            raise InvalidExpressionError(expression, f"unexpected character at position {position}")
        if match.group("number") is not None:
            tokens.append(float(match.group("number")))
        else:
            tokens.append(match.group("operator"))
        position = match.end()
    return tokens


class ArithmeticParser:
    """
    Recursive-descent evaluator for + - * / ( ) and unary sign.

    Grammar:
        sum    := term (('+' | '-') term)*
        term   := unary (('*' | '/') unary)*
        unary  := ('+' | '-') unary | factor
        factor := NUMBER | '(' sum ')'
    """

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = tokenize_expression(expression)
        self.position = 0

    def evaluate(self) -> float:
        if not self.tokens:
            raise InvalidExpressionError(self.expression, "expression is empty")
        try:
            value = self._parse_sum()
        except RecursionError:
            raise InvalidExpressionError(self.expression, "expression is nested too deeply")
        if self.position < len(self.tokens):
            raise InvalidExpressionError(self.expression, f"unexpected '{self.tokens[self.position]}'")
        if not math.isfinite(value):
            raise InvalidExpressionError(self.expression, "result is out of range")
        return value

    def _peek(self) -> Optional[Token]:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def _advance(self) -> Token:
        token = self._peek()
        if token is None:
            raise InvalidExpressionError(self.expression, "unexpected end of expression")
        self.position += 1
        return token

    def _parse_sum(self) -> float:
        value = self._parse_term()
        while self._peek() in ("+", "-"):
            operator = self._advance()
            right = self._parse_term()
            value = value + right if operator == "+" else value - right
        return value

    def _parse_term(self) -> float:
        value = self._parse_unary()
        while self._peek() in ("*", "/"):
            operator = self._advance()
            right = self._parse_unary()
            if operator == "*":
                value = value * right
            else:
                if right == 0:
                    raise DivisionByZeroError(self.expression)
                value = value / right
        return value

    def _parse_unary(self) -> float:
        if self._peek() in ("+", "-"):
            operator = self._advance()
            operand = self._parse_unary()
            return -operand if operator == "-" else operand
        return self._parse_factor()

    def _parse_factor(self) -> float:
        token = self._advance()
        if isinstance(token, float):
            return token
        if token == "(":
            value = self._parse_sum()
            if self._peek() != ")":
                raise InvalidExpressionError(self.expression, "missing closing parenthesis ')'")
            self._advance()
            return value
        raise InvalidExpressionError(self.expression, f"unexpected '{token}'")


def evaluate_expression(expression: str) -> float:
    """
    Sanitize and evaluate an arithmetic expression.

    Raises:
        InvalidExpressionError: Empty, unbalanced or otherwise malformed input
        DivisionByZeroError: Division by zero
    """
    return ArithmeticParser(sanitize_expression(expression)).evaluate()


# ==================== RESULT FORMATTER ====================

def to_fraction(decimal: float) -> str:
    """
    Closest simple fraction over FRACTION_DENOMINATORS.

    Returns e.g. "3 7/8", "1/2", "4" or "0". Negative values are formatted
    by magnitude with a leading '-'.
    """
    if decimal == 0:
        return "0"
    if decimal < 0:
        magnitude = to_fraction(-decimal)
        return magnitude if magnitude == "0" else f"-{magnitude}"

    whole = math.floor(decimal)
    fractional = decimal - whole
    if fractional == 0:
        return str(whole)

    best_numerator = 0
    best_denominator = 1
    best_error = abs(fractional)

    for denominator in FRACTION_DENOMINATORS:
        # Round half up
        numerator = math.floor(fractional * denominator + 0.5)
        if numerator == 0:
            continue

        error = abs(fractional - numerator / denominator)
        if error < best_error:
            best_numerator = numerator
            best_denominator = denominator
            best_error = error

        if error < FRACTION_TOLERANCE:
            break

    # Remainder below 1/32: nothing to show beyond the whole part
    if best_numerator == 0:
        return str(whole)

    if best_numerator == best_denominator:
        return str(whole + 1)

    divisor = math.gcd(best_numerator, best_denominator)
    best_numerator //= divisor
    best_denominator //= divisor

    if whole == 0:
        return f"{best_numerator}/{best_denominator}"
    return f"{whole} {best_numerator}/{best_denominator}"


def format_feet_inches(inches: float) -> str:
    """Format total inches as 4' 3 7/8" (or 3 7/8" below one foot)."""
    if inches < 0:
        magnitude = format_feet_inches(-inches)
        return magnitude if magnitude == '0"' else f"-{magnitude}"

    feet = math.floor(inches / INCHES_PER_FOOT)
    fraction = to_fraction(inches % INCHES_PER_FOOT)

    # 11.99" rounds to a full foot
    if fraction == "12":
        feet += 1
        fraction = "0"

    if feet == 0:
        return f'{fraction}"'
    return f"{feet}' {fraction}\""


def format_pounds_ounces(grams: float) -> str:
    """Format total grams as '5 lb 8.000 oz' (or '8.000 oz' below one pound)."""
    if grams < 0:
        magnitude = format_pounds_ounces(-grams)
        return magnitude if magnitude == "0.000 oz" else f"-{magnitude}"

    pounds = math.floor(grams / GRAMS_PER_POUND)
    ounces = f"{(grams % GRAMS_PER_POUND) / GRAMS_PER_OUNCE:.3f}"

    if ounces == "16.000":
        pounds += 1
        ounces = "0.000"

    if pounds == 0:
        return f"{ounces} oz"
    return f"{pounds} lb {ounces} oz"


# ==================== CONVERTERS ====================

class MeasurementConverter:
    """
    Pass pipeline and formatter for one measurement domain.

    Subclasses provide the unit table, the compound rewrite, the compound
    formatter and the target units of the breakdown.
    """

    domain: MeasurementDomain
    units: UnitTable
    # (breakdown name, unit symbol)
    targets: Tuple[Tuple[str, str], ...] = ()

    def rewrite_compound(self, expression: str) -> str:
        raise NotImplementedError

    def format_compound(self, base_value: float) -> str:
        raise NotImplementedError

    def parse_expression(self, raw_input: str) -> float:
        """
        Parse a raw expression into a base-unit scalar.

        Raises:
            CalculationError: Any classified parsing or evaluation failure
        """
        # Upper-case first so unit matching is case-exact
        expression = raw_input.strip().upper()
        expression = self.rewrite_compound(expression)
        expression = rewrite_fractions(expression)
        expression = rewrite_units(expression, self.units)
        logger.debug(f"{self.domain.value} expression '{raw_input}' rewritten to '{expression}'")
        return evaluate_expression(expression)

    def convert_from_base(self, base_value: float) -> Dict[str, float]:
        return {
            name: self.units.from_base(base_value, symbol)
            for name, symbol in self.targets
        }

    def format_display(self, base_value: float, breakdown: Dict[str, float]) -> Dict[str, str]:
        display = {
            name: f"{breakdown[name]:.{places}f}"
            for name, places in DISPLAY_PRECISION[self.domain].items()
        }
        return display

    def convert(self, base_value: float) -> ConversionResult:
        return ConversionResult(
            domain=self.domain,
            base_unit=self.units.base_symbol,
            base_value=base_value,
            breakdown=self.convert_from_base(base_value),
        )


class LengthConverter(MeasurementConverter):
    """Length domain, base unit inch"""

    domain = MeasurementDomain.LENGTH
    units = LENGTH_UNITS
    targets = (
        ("feet", "FT"),
        ("inches", "IN"),
        ("meters", "M"),
        ("centimeters", "CM"),
        ("millimeters", "MM"),
    )

    def rewrite_compound(self, expression: str) -> str:
        return rewrite_feet_inches(expression)

    def format_compound(self, base_value: float) -> str:
        return format_feet_inches(base_value)

    def format_display(self, base_value: float, breakdown: Dict[str, float]) -> Dict[str, str]:
        display = super().format_display(base_value, breakdown)
        display["feet_inches"] = format_feet_inches(base_value)
        display["inches_fraction"] = f'{to_fraction(breakdown["inches"])}"'
        return display


class WeightConverter(MeasurementConverter):
    """Weight domain, base unit gram"""

    domain = MeasurementDomain.WEIGHT
    units = WEIGHT_UNITS
    targets = (
        ("pounds", "LB"),
        ("ounces", "OZ"),
        ("kilograms", "KG"),
        ("grams", "G"),
    )

    def rewrite_compound(self, expression: str) -> str:
        return rewrite_pounds_ounces(expression)

    def format_compound(self, base_value: float) -> str:
        return format_pounds_ounces(base_value)

    def format_display(self, base_value: float, breakdown: Dict[str, float]) -> Dict[str, str]:
        display = super().format_display(base_value, breakdown)
        display["pounds_ounces"] = format_pounds_ounces(base_value)
        return display


# ==================== MEASUREMENT ENGINE ====================

class MeasurementEngine:
    """
    Stateless calculation facade over the length and weight converters.

    calculate() never raises for bad input: it always returns a
    CalculationResult whose status is SUCCESS, ERROR or SKIPPED.
    """

    def __init__(self):
        self.version = ENGINE_VERSION
        self.converters: Dict[MeasurementDomain, MeasurementConverter] = {
            MeasurementDomain.LENGTH: LengthConverter(),
            MeasurementDomain.WEIGHT: WeightConverter(),
        }

    @staticmethod
    def resolve_domain(domain: Union[str, MeasurementDomain]) -> MeasurementDomain:
        """
        Raises:
            ValueError: If domain is not a known measurement domain
        """
        if isinstance(domain, MeasurementDomain):
            return domain
        try:
            return MeasurementDomain(str(domain).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown measurement domain '{domain}'. Allowed: {', '.join(d.value for d in MeasurementDomain)}"
            )

    def converter_for(self, domain: Union[str, MeasurementDomain]) -> MeasurementConverter:
        return self.converters[self.resolve_domain(domain)]

    def calculate(self, domain: Union[str, MeasurementDomain], raw_input: Optional[str]) -> CalculationResult:
        """
        Main calculation method.

        Steps:
        1) Resolve converter for the domain
        2) Skip empty/whitespace input (no error, nothing to display)
        3) Parse expression to a base-unit scalar
        4) Convert to every target unit
        5) Format compound and fixed-precision display strings

        Args:
            domain: "length" or "weight"
            raw_input: Expression as typed by the user

        Returns:
            CalculationResult
        """
        converter = self.converter_for(domain)
        raw_input = raw_input or ""

        if not raw_input.strip():
            return CalculationResult(
                domain=converter.domain,
                raw_input=raw_input,
                status=CalculationStatus.SKIPPED,
                calculation_version=self.version
            )

        try:
            base_value = converter.parse_expression(raw_input)
            conversion = converter.convert(base_value)

            return CalculationResult(
                domain=converter.domain,
                raw_input=raw_input,
                status=CalculationStatus.SUCCESS,
                base_unit=conversion.base_unit,
                base_value=conversion.base_value,
                formatted=converter.format_compound(base_value),
                breakdown=conversion.breakdown,
                display=converter.format_display(base_value, conversion.breakdown),
                calculation_version=self.version
            )

        except CalculationError as e:
            logger.warning(f"{converter.domain.value} calculation failed for '{raw_input}': [{e.error_code}] {e.message}")
            return CalculationResult(
                domain=converter.domain,
                raw_input=raw_input,
                status=CalculationStatus.ERROR,
                errors=[e.to_dict()],
                calculation_version=self.version
            )

        except Exception as e:
            logger.error(f"Unexpected error in measurement calculation: {e}", exc_info=True)
            return CalculationResult(
                domain=converter.domain,
                raw_input=raw_input,
                status=CalculationStatus.ERROR,
                errors=[{
                    "error_code": "UNEXPECTED_ERROR",
                    "message": f"Unexpected error: {str(e)}",
                    "field": None,
                    "severity": "HARD_ERROR"
                }],
                calculation_version=self.version
            )
