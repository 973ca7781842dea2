"""
Recursive Descent Parser for Lox

Structure:
- Lexer: Token stream from source (lexer_rd)
- Parser: one method per precedence tier
- AST: lark Tree nodes with lark Token leaves; every Tree carries meta.node_id

Errors are reported to the Diagnostics collector. After an error the parser
synchronizes to the next statement boundary and leaves an ``invalid_stmt``
placeholder, so one run reports every syntax error in the file.
"""

from typing import Any, List, Optional

from lark import Token, Tree

from .diagnostics import Diagnostics
from .lexer_rd import tokenize
from .runtime import LoxBool, LoxNil, LoxNumber, LoxString
from .token_types import TT, Tok
from .tree import lark_token, mk, synthetic_token, tree_label

MAX_ARGS = 255

# Keywords that start a new declaration or statement; synchronization stops here.
_STATEMENT_STARTS = {TT.CLASS, TT.FUN, TT.VAR, TT.FOR, TT.IF, TT.WHILE, TT.PRINT, TT.RETURN}

# ============================================================================
# Parser
# ============================================================================

class ParseError(Exception):
    """Unwinds to the nearest declaration; the message is already reported."""
    def __init__(self, message: str, token: Optional[Tok] = None):
        self.message = message
        self.token = token
        super().__init__(
            f"{message} at line {token.line}, col {token.column}" if token else message
        )

class Parser:
    """
    Recursive descent parser for Lox.

    Expression precedence (lowest to highest):
    1. comma (,)  - evaluates and discards its left operand
    2. ternary (? :), lambda (fun (...) {...})
    3. assignment (=)
    4. or
    5. and
    6. equality (==, !=)
    7. comparison (<, <=, >, >=)
    8. term (+, -)
    9. factor (*, /, %)
    10. unary (!, -)
    11. call / property access
    12. primary (literals, identifiers, this, super, groups, lists)
    """

    def __init__(self, tokens: List[Tok], diagnostics: Optional[Diagnostics] = None):
        self.tokens = tokens
        self.pos = 0
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.loop_depth = 0

    # ========================================================================
    # Token Navigation
    # ========================================================================

    def peek(self, offset: int = 0) -> Tok:
        """Look ahead at token; past the end this is the EOF token"""
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def previous(self) -> Tok:
        return self.tokens[self.pos - 1]

    def is_at_end(self) -> bool:
        return self.peek().type == TT.EOF

    def advance(self) -> Tok:
        """Consume current token and move to next"""
        if not self.is_at_end():
            self.pos += 1
        return self.previous()

    def check(self, *types: TT) -> bool:
        """Check if current token matches any of the given types"""
        return self.peek().type in types

    def check_next(self, token_type: TT) -> bool:
        return not self.is_at_end() and self.peek(1).type == token_type

    def match(self, *types: TT) -> bool:
        """Check and consume if current token matches"""
        if self.check(*types):
            self.advance()
            return True
        return False

    def expect(self, token_type: TT, message: str) -> Tok:
        """Consume token of expected type or report and raise"""
        if self.check(token_type):
            return self.advance()
        raise self.error(self.peek(), message)

    def error(self, token: Tok, message: str) -> ParseError:
        self.diagnostics.error_at(token, message)
        return ParseError(message, token)

    def synchronize(self) -> None:
        """Discard tokens up to the next statement boundary"""
        self.advance()

        while not self.is_at_end():
            if self.previous().type == TT.SEMI:
                return
            if self.peek().type in _STATEMENT_STARTS:
                return
            self.advance()

    # ========================================================================
    # Node construction
    # ========================================================================

    def node(self, label: str, children: List[Any], tok: Tok) -> Tree:
        return mk(label, children, tok.line)

    def leaf(self, tok: Tok) -> Token:
        return lark_token(tok)

    def literal(self, tok: Tok, value: Any) -> Tree:
        return self.node('literal', [self.leaf(tok), value], tok)

    def invalid_expr(self) -> Tree:
        tok = self.peek()
        return self.node('invalid_expr', [self.leaf(tok)], tok)

    # ========================================================================
    # Top-Level Parsing
    # ========================================================================

    def parse(self) -> List[Tree]:
        """Parse entire program into a statement list"""
        statements = []

        while not self.is_at_end():
            statements.append(self.declaration())

        return statements

    def parse_expression(self) -> Tree:
        return self.expression()

    def parse_repl_expression(self) -> Optional[Tree]:
        """Parse the whole input as one bare expression, or return None.

        Any syntax error, or input left over after the expression (such as a
        statement terminator), means the input is not a bare expression.
        """
        try:
            expr = self.expression()
        except ParseError:
            return None

        if self.diagnostics.had_error or not self.is_at_end():
            return None

        return expr

    # ========================================================================
    # Declarations
    # ========================================================================

    def declaration(self) -> Tree:
        try:
            if self.match(TT.CLASS):
                return self.class_declaration()
            if self.check(TT.FUN) and self.check_next(TT.IDENT):
                self.advance()
                return self.function("function")
            if self.match(TT.VAR):
                return self.var_declaration()
            return self.statement()
        except ParseError:
            tok = self.peek()
            self.synchronize()
            return self.node('invalid_stmt', [self.leaf(tok)], tok)

    def class_declaration(self) -> Tree:
        name = self.expect(TT.IDENT, "Expect class name.")

        superclass = None
        if self.match(TT.LT):
            sup = self.expect(TT.IDENT, "Expect superclass name.")
            superclass = self.node('variable', [self.leaf(sup)], sup)

        brace = self.expect(TT.LBRACE, "Expect '{' before class body.")

        methods: List[Tree] = []
        statics: List[Tree] = []

        while not self.check(TT.RBRACE) and not self.is_at_end():
            if self.match(TT.CLASS):
                statics.append(self.function("static method"))
            else:
                methods.append(self.function("method"))

        self.expect(TT.RBRACE, "Expect '}' after class body.")

        return self.node('class_decl', [
            self.leaf(name),
            superclass,
            self.node('methods', methods, brace),
            self.node('static_methods', statics, brace),
        ], name)

    def function(self, kind: str) -> Tree:
        """Named function, method or getter. Getters (methods written without a
        parameter list) get ``None`` in the params slot."""
        name = self.expect(TT.IDENT, f"Expect {kind} name.")

        params: Optional[Tree] = None
        if kind == "function" or not self.check(TT.LBRACE):
            self.expect(TT.LPAR, f"Expect '(' after {kind} name.")
            params = self.parameters()

        self.expect(TT.LBRACE, f"Expect '{{' before {kind} body.")
        body = self.function_body()

        return self.node('function', [self.leaf(name), params, body], name)

    def parameters(self) -> Tree:
        """Parameter names up to and including the closing paren"""
        start = self.previous()
        params: List[Token] = []

        if not self.check(TT.RPAR):
            while True:
                if len(params) >= MAX_ARGS:
                    self.error(self.peek(), f"Can't have more than {MAX_ARGS} parameters.")
                params.append(self.leaf(self.expect(TT.IDENT, "Expect parameter name.")))
                if not self.match(TT.COMMA):
                    break

        self.expect(TT.RPAR, "Expect ')' after parameters.")
        return self.node('params', params, start)

    def function_body(self) -> Tree:
        """Block after the opening brace. `break` never crosses a function boundary."""
        start = self.previous()
        enclosing_loops = self.loop_depth
        self.loop_depth = 0

        try:
            return self.node('body', self.block(), start)
        finally:
            self.loop_depth = enclosing_loops

    def var_declaration(self) -> Tree:
        name = self.expect(TT.IDENT, "Expect variable name.")

        initializer = None
        if self.match(TT.ASSIGN):
            initializer = self.expression()

        self.expect(TT.SEMI, "Expect ';' after variable declaration.")
        return self.node('var_decl', [self.leaf(name), initializer], name)

    # ========================================================================
    # Statements
    # ========================================================================

    def statement(self) -> Tree:
        if self.match(TT.BREAK):
            return self.break_statement()
        if self.match(TT.FOR):
            return self.for_statement()
        if self.match(TT.IF):
            return self.if_statement()
        if self.match(TT.LBRACE):
            brace = self.previous()
            return self.node('block', self.block(), brace)
        if self.match(TT.PRINT):
            return self.print_statement()
        if self.match(TT.RETURN):
            return self.return_statement()
        if self.match(TT.WHILE):
            return self.while_statement()
        return self.expression_statement()

    def block(self) -> List[Tree]:
        statements = []

        while not self.check(TT.RBRACE) and not self.is_at_end():
            statements.append(self.declaration())

        self.expect(TT.RBRACE, "Expect '}' after block.")
        return statements

    def break_statement(self) -> Tree:
        keyword = self.previous()

        if self.loop_depth == 0:
            self.error(keyword, "Can't use 'break' outside of a loop.")

        self.expect(TT.SEMI, "Expect ';' after 'break'.")
        return self.node('break_stmt', [self.leaf(keyword)], keyword)

    def for_statement(self) -> Tree:
        """Desugar `for (init; cond; incr) body` into
        `{ init; while (cond) { body; incr; } }`."""
        keyword = self.previous()
        self.expect(TT.LPAR, "Expect '(' after 'for'.")

        initializer: Optional[Tree]
        if self.match(TT.SEMI):
            initializer = None
        elif self.match(TT.VAR):
            initializer = self.var_declaration()
        else:
            initializer = self.expression_statement()

        condition = None
        if not self.check(TT.SEMI):
            condition = self.expression()
        self.expect(TT.SEMI, "Expect ';' after loop condition.")

        increment = None
        if not self.check(TT.RPAR):
            increment = self.expression()
        self.expect(TT.RPAR, "Expect ')' after for clauses.")

        self.loop_depth += 1
        try:
            body = self.statement()
        finally:
            self.loop_depth -= 1

        if increment is not None:
            body = self.node('block', [body, self.node('expression_stmt', [increment], keyword)], keyword)

        if condition is None:
            condition = self.node('literal', [synthetic_token(TT.TRUE, 'true', keyword.line), LoxBool(True)], keyword)

        loop = self.node('while_stmt', [self.leaf(keyword), condition, body], keyword)

        if initializer is not None:
            loop = self.node('block', [initializer, loop], keyword)

        return loop

    def if_statement(self) -> Tree:
        keyword = self.previous()
        self.expect(TT.LPAR, "Expect '(' after 'if'.")
        condition = self.expression()
        self.expect(TT.RPAR, "Expect ')' after if condition.")

        then_branch = self.statement()
        else_branch = self.statement() if self.match(TT.ELSE) else None

        return self.node('if_stmt', [self.leaf(keyword), condition, then_branch, else_branch], keyword)

    def print_statement(self) -> Tree:
        keyword = self.previous()
        value = self.expression()
        self.expect(TT.SEMI, "Expect ';' after value.")
        return self.node('print_stmt', [self.leaf(keyword), value], keyword)

    def return_statement(self) -> Tree:
        keyword = self.previous()
        value = None if self.check(TT.SEMI) else self.expression()
        self.expect(TT.SEMI, "Expect ';' after return value.")
        return self.node('return_stmt', [self.leaf(keyword), value], keyword)

    def while_statement(self) -> Tree:
        keyword = self.previous()
        self.expect(TT.LPAR, "Expect '(' after 'while'.")
        condition = self.expression()
        self.expect(TT.RPAR, "Expect ')' after condition.")

        self.loop_depth += 1
        try:
            body = self.statement()
        finally:
            self.loop_depth -= 1

        return self.node('while_stmt', [self.leaf(keyword), condition, body], keyword)

    def expression_statement(self) -> Tree:
        start = self.peek()
        expr = self.expression()
        self.expect(TT.SEMI, "Expect ';' after expression.")
        return self.node('expression_stmt', [expr], start)

    # ========================================================================
    # Expressions
    # ========================================================================

    def expression(self) -> Tree:
        return self.comma()

    def comma(self) -> Tree:
        expr = self.ternary()

        while self.match(TT.COMMA):
            op = self.previous()
            right = self.ternary()
            expr = self.node('comma', [expr, self.leaf(op), right], op)

        return expr

    def ternary(self) -> Tree:
        if self.match(TT.FUN):
            return self.lambda_expr()

        expr = self.assignment()

        if self.match(TT.QMARK):
            qmark = self.previous()
            then_branch = self.expression()
            self.expect(TT.COLON, "Expect ':' after then branch of conditional expression.")
            else_branch = self.ternary()
            return self.node('conditional', [expr, self.leaf(qmark), then_branch, else_branch], qmark)

        return expr

    def lambda_expr(self) -> Tree:
        keyword = self.previous()
        self.expect(TT.LPAR, "Expect '(' after 'fun'.")
        params = self.parameters()
        self.expect(TT.LBRACE, "Expect '{' before lambda body.")
        body = self.function_body()
        return self.node('lambda_expr', [self.leaf(keyword), params, body], keyword)

    def assignment(self) -> Tree:
        expr = self.or_expr()

        if self.match(TT.ASSIGN):
            equals = self.previous()
            # Right-associative; the value may itself be a conditional or lambda.
            value = self.ternary()

            match tree_label(expr):
                case 'variable':
                    return self.node('assign', [expr.children[0], value], equals)
                case 'get':
                    obj, name = expr.children
                    return self.node('set', [obj, name, value], equals)

            self.error(equals, "Invalid assignment target.")

        return expr

    def or_expr(self) -> Tree:
        expr = self.and_expr()

        while self.match(TT.OR):
            op = self.previous()
            right = self.and_expr()
            expr = self.node('logical', [expr, self.leaf(op), right], op)

        return expr

    def and_expr(self) -> Tree:
        expr = self.equality()

        while self.match(TT.AND):
            op = self.previous()
            right = self.equality()
            expr = self.node('logical', [expr, self.leaf(op), right], op)

        return expr

    def equality(self) -> Tree:
        return self._binary_tier(self.comparison, TT.NEQ, TT.EQ)

    def comparison(self) -> Tree:
        return self._binary_tier(self.term, TT.GT, TT.GTE, TT.LT, TT.LTE)

    def term(self) -> Tree:
        return self._binary_tier(self.factor, TT.MINUS, TT.PLUS)

    def factor(self) -> Tree:
        return self._binary_tier(self.unary, TT.SLASH, TT.STAR, TT.MOD)

    def _binary_tier(self, operand, *ops: TT) -> Tree:
        """Left-associative chain of one precedence tier"""
        expr = operand()

        while self.match(*ops):
            op = self.previous()
            right = operand()
            expr = self.node('binary', [expr, self.leaf(op), right], op)

        return expr

    def unary(self) -> Tree:
        if self.match(TT.NEG, TT.MINUS):
            op = self.previous()
            right = self.unary()
            return self.node('unary', [self.leaf(op), right], op)

        return self.call()

    def call(self) -> Tree:
        expr = self.primary()

        while True:
            if self.match(TT.LPAR):
                expr = self.finish_call(expr)
            elif self.match(TT.DOT):
                name = self.expect(TT.IDENT, "Expect property name after '.'.")
                expr = self.node('get', [expr, self.leaf(name)], name)
            else:
                break

        return expr

    def finish_call(self, callee: Tree) -> Tree:
        args: List[Tree] = []

        if not self.check(TT.RPAR):
            while True:
                if len(args) >= MAX_ARGS:
                    self.error(self.peek(), f"Can't have more than {MAX_ARGS} arguments.")
                args.append(self.ternary())
                if not self.match(TT.COMMA):
                    break

        paren = self.expect(TT.RPAR, "Expect ')' after arguments.")
        return self.node('call', [callee, self.leaf(paren), self.node('arguments', args, paren)], paren)

    def primary(self) -> Tree:
        tok = self.peek()

        if self.match(TT.FALSE):
            return self.literal(tok, LoxBool(False))
        if self.match(TT.TRUE):
            return self.literal(tok, LoxBool(True))
        if self.match(TT.NIL):
            return self.literal(tok, LoxNil())
        if self.match(TT.NUMBER):
            return self.literal(tok, LoxNumber(tok.literal))
        if self.match(TT.STRING):
            return self.literal(tok, LoxString(tok.literal))
        if self.match(TT.THIS):
            return self.node('this_expr', [self.leaf(tok)], tok)
        if self.match(TT.SUPER):
            self.expect(TT.DOT, "Expect '.' after 'super'.")
            method = self.expect(TT.IDENT, "Expect superclass method name.")
            return self.node('super_expr', [self.leaf(tok), self.leaf(method)], tok)
        if self.match(TT.IDENT):
            return self.node('variable', [self.leaf(tok)], tok)
        if self.match(TT.LPAR):
            expr = self.expression()
            self.expect(TT.RPAR, "Expect ')' after expression.")
            return self.node('grouping', [self.leaf(tok), expr], tok)
        if self.match(TT.LSQB):
            return self.list_literal(tok)

        # Binary operator with no left operand: report, parse the right operand, keep going
        for ops, operand in (
            ((TT.NEQ, TT.EQ), self.equality),
            ((TT.GT, TT.GTE, TT.LT, TT.LTE), self.comparison),
            ((TT.PLUS,), self.term),
            ((TT.SLASH, TT.STAR, TT.MOD), self.factor),
        ):
            if self.match(*ops):
                self.error(self.previous(), "Missing left-hand operand.")
                operand()
                return self.invalid_expr()

        raise self.error(tok, "Expect expression.")

    def list_literal(self, bracket: Tok) -> Tree:
        elements: List[Tree] = []

        if not self.check(TT.RSQB):
            while True:
                elements.append(self.ternary())
                if not self.match(TT.COMMA):
                    break

        self.expect(TT.RSQB, "Expect ']' after list elements.")
        return self.node('list', [self.leaf(bracket), *elements], bracket)

# ============================================================================
# Convenience
# ============================================================================

def parse_source(source: str, diagnostics: Optional[Diagnostics] = None) -> List[Tree]:
    """Tokenize and parse; errors go to *diagnostics*"""
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    tokens = tokenize(source, diagnostics)
    return Parser(tokens, diagnostics).parse()
