"""
テスト用ユーティリティパッケージ
"""
