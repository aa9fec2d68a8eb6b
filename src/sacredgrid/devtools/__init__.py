"""CLI から呼ぶ開発用ツール群。"""
