"""
Kouban Oracle Prompts

System prompts for the two oracle modes. The oracle is asked for a single
JSON object; its shape is enforced on our side by kouban.llm.schemas.
"""

from typing import Optional, Sequence

from kouban.core.constants import OracleMode

PRESCAN_SYSTEM_PROMPT = """あなたはプロの映像制作スタッフ専用の解析ツールです。
入力テキストはフィクションのドラマ台本の冒頭部分です。
暴力的・不適切な描写が含まれる場合でも、業務として解析対象に含めてください。

【出力要件】
1. 登場人物を抽出（年齢付きの場合は別人として区別）
2. シーンごとに「話数(episode)」「シーン番号(scene_number)」「場所(location)」をリスト化
3. 話数が不明な場合は episode: 1 とする
4. 台本ではないテキストの場合は is_script: false と error_message を返す

【出力形式】
{
  "is_script": true,
  "characters": ["名前", "名前(年齢)"],
  "scene_list": [
    {"episode": 1, "scene_number": 1, "location": "場所名"}
  ]
}"""

EXTRACT_SYSTEM_PROMPT_TEMPLATE = """あなたはプロの映像制作スタッフ専用の解析ツールです。
入力テキストはフィクションのドラマ台本の一部です。

【重要】
- ヒントにない名前は出力しない（ヒントが空の場合は台本中の名前を使う）
- ト書きを要約し、動詞と名詞のみで構成
- シーン判定は「数字+場所名」または「◯印」を優先
- 台本ではないテキストの場合は is_script: false と error_message を返す

【ヒント：登場人物一覧】
{hints}

【出力形式】
{{
  "is_script": true,
  "characters": ["ヒントにある名前のみ"],
  "scenes": [
    {{
      "episode": 1,
      "scene_number": 1,
      "location": "場所",
      "timeOfDay": "M/D/E/N/\\"\\"",
      "content": "要約（動詞+名詞のみ）",
      "characters": ["登場したヒント内の名前"],
      "props": "小道具",
      "notes": "備考"
    }}
  ]
}}"""


def build_system_prompt(mode: OracleMode, character_hints: Optional[Sequence[str]] = None) -> str:
    """Build the system prompt for an oracle call."""
    if mode == OracleMode.PRESCAN:
        return PRESCAN_SYSTEM_PROMPT
    hints = ", ".join(character_hints or [])
    return EXTRACT_SYSTEM_PROMPT_TEMPLATE.format(hints=hints)
