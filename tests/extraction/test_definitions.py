"""Tests for extraction/definitions.py.

Covers:
- Module and function prologue directives
- Every definition target (declarations, variables, builders, inline)
- Body/name ranges and body deduplication
"""

from __future__ import annotations

import pytest

from actionlens.extraction.definitions import extract_definitions
from actionlens.extraction.models import ANONYMOUS_NAME, DEFAULT_NAME, INLINE_NAME


def names(text: str, file_name: str = "page.tsx") -> list[str]:
    return [d.name for d in extract_definitions(text, file_name)]


class TestModulePrologue:
    """'use server' at the top of a module."""

    def test_given_module_directive_when_exported_async_function_then_definition(self) -> None:
        text = "'use server';\nexport async function save() { return 1; }\n"

        spans = extract_definitions(text, "actions.ts")

        assert [s.name for s in spans] == ["save"]
        assert spans[0].name_start == text.index("save")
        assert spans[0].name_end == text.index("save") + 4
        assert spans[0].body_start == text.index("{")
        assert spans[0].body_end == text.rindex("}") + 1

    def test_given_module_directive_when_function_not_exported_then_ignored(self) -> None:
        text = "'use server';\nasync function helper() {}\nexport async function save() {}\n"

        assert names(text, "actions.ts") == ["save"]

    def test_given_module_directive_when_exported_sync_function_then_ignored(self) -> None:
        assert names("'use server';\nexport function notAction() {}\n", "a.ts") == []

    def test_given_comment_before_directive_then_still_prologue(self) -> None:
        text = "// server only\n/* really */\n\"use server\";\nexport async function save() {}\n"

        assert names(text, "a.ts") == ["save"]

    def test_given_directive_after_statement_then_not_prologue(self) -> None:
        text = "import x from './x';\n'use server';\nexport async function save() {}\n"

        assert names(text, "a.ts") == []

    def test_given_other_directive_first_then_prologue_continues(self) -> None:
        text = "'use strict';\n'use server';\nexport async function save() {}\n"

        assert names(text, "a.ts") == ["save"]

    def test_given_use_client_then_no_definitions(self) -> None:
        assert names("'use client';\nexport async function save() {}\n", "a.ts") == []

    def test_given_exported_async_variable_then_definition(self) -> None:
        text = "'use server';\nexport const save = async (data: FormData) => { return 1; };\n"

        assert names(text, "a.ts") == ["save"]

    def test_given_expression_bodied_arrow_then_body_is_expression(self) -> None:
        text = "'use server';\nexport const ping = async () => fetch('/x');\n"

        spans = extract_definitions(text, "a.ts")

        assert [s.name for s in spans] == ["ping"]
        assert text[spans[0].body_start : spans[0].body_end] == "fetch('/x')"

    def test_given_anonymous_default_export_then_named_default(self) -> None:
        text = "'use server';\nexport default async function () { return 1; }\n"

        spans = extract_definitions(text, "a.ts")

        assert [s.name for s in spans] == [DEFAULT_NAME]
        assert not spans[0].is_named
        assert spans[0].name_start is None

    def test_given_named_default_export_then_declared_name(self) -> None:
        assert names("'use server';\nexport default async function submit() {}\n", "a.ts") == [
            "submit"
        ]


class TestFunctionPrologue:
    """'use server' inside the function body."""

    def test_given_nested_local_function_with_directive_then_definition(self) -> None:
        text = """
export default async function Page() {
  async function onSubmit(formData: FormData) {
    'use server';
    return String(formData.get('title') ?? '');
  }
  return <form action={onSubmit} />;
}
"""
        assert names(text) == ["onSubmit"]

    def test_given_non_async_function_with_directive_then_ignored(self) -> None:
        assert names("export function notAction(){ 'use server'; return 1; }", "a.ts") == []

    def test_given_local_const_arrow_with_directive_then_variable_name(self) -> None:
        text = "function P(){ const run = async () => { 'use server'; return 1; }; run(); }"

        assert names(text) == ["run"]

    def test_given_inline_jsx_action_then_inline_sentinel(self) -> None:
        text = """
export default function Page() {
  return (
    <form action={async () => { 'use server'; console.log('inlined'); }}>
      <button>send</button>
    </form>
  );
}
"""
        spans = extract_definitions(text, "inline.tsx")

        assert [s.name for s in spans] == [INLINE_NAME]
        assert spans[0].name_start is None

    def test_given_async_function_expression_with_directive_then_inline(self) -> None:
        text = "register(async function () { 'use server'; });"

        assert names(text, "a.ts") == [INLINE_NAME]

    def test_given_exported_without_directive_then_ignored(self) -> None:
        text = "export async function maybeAction() { return 1 }"

        assert names(text, "a.ts") == []


class TestBuilderChains:
    def test_given_builder_chain_under_module_directive_then_variable_name(self) -> None:
        text = """'use server';
import { actionClient } from './safe-action';
export const greetAction = actionClient
  .inputSchema({})
  .action(async (name: string) => {
    return 'hi ' + name;
  });
async function Page() {
  const v = await greetAction('you');
}
"""
        spans = extract_definitions(text, "builder.tsx")

        assert [s.name for s in spans] == ["greetAction"]
        assert spans[0].name_start == text.index("greetAction")
        assert text[spans[0].body_start] == "{"

    def test_given_builder_without_directive_then_ignored(self) -> None:
        text = "export const a = client.action(async () => { return 1; });"

        assert names(text, "a.ts") == []


class TestDeduplication:
    def test_given_variable_arrow_with_own_directive_then_reported_once_first_name_wins(
        self,
    ) -> None:
        """The variable rule and the inline rule see the same body; the variable name wins."""
        text = "const save = async () => { 'use server'; };"

        spans = extract_definitions(text, "a.ts")

        assert [s.name for s in spans] == ["save"]

    def test_given_two_variables_in_one_statement_then_both_reported(self) -> None:
        text = "'use server';\nexport const a = async () => {}, b = async () => {};\n"

        assert names(text, "a.ts") == ["a", "b"]

    def test_document_order(self) -> None:
        text = (
            "'use server';\n"
            "export async function first() {}\n"
            "export const second = async () => {};\n"
            "export async function third() {}\n"
        )

        assert names(text, "a.ts") == ["first", "second", "third"]


class TestRobustness:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "export async function (",
            "'use server';\nexport async function save( {",
            "const x = <div",
        ],
    )
    def test_given_malformed_source_then_no_exception(self, text: str) -> None:
        assert isinstance(extract_definitions(text, "broken.tsx"), list)

    def test_deterministic(self) -> None:
        text = "'use server';\nexport async function a() {}\nexport const b = async () => {};\n"

        assert extract_definitions(text, "a.ts") == extract_definitions(text, "a.ts")

    def test_given_unicode_before_definition_then_offsets_are_str_indices(self) -> None:
        text = "'use server';\n// héllo wörld 🌍\nexport async function save() { return 1; }\n"

        [span] = extract_definitions(text, "a.ts")

        assert text[span.name_start : span.name_end] == "save"
        assert text[span.body_start] == "{"

    def test_anonymous_sentinel_is_not_named(self) -> None:
        from actionlens.extraction.models import ActionDefinitionSpan

        assert not ActionDefinitionSpan(ANONYMOUS_NAME, 0, 1).is_named
