"""sacredgrid のコア（アニメーション・波形・line factory・フラクタル配置）。"""
