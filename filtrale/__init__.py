"""
Filtrale 影像濾鏡工具

為上傳的照片套用漸層疊加與標誌，並匯出為 PNG 檔案
"""

__version__ = "0.1.0"
