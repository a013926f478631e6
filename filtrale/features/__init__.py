"""
功能模組

- compositing: 漸層與標誌合成
- export: 匯出策略分派與批次匯出
"""
