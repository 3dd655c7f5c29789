"""
Steps de enriquecimento baseados em regras.

- tags            → `virtual-tags`: overlay de tags virtuais
- emissions       → `green-ops-co2`: estimativa de CO2 por coeficientes
- classification  → `ai-classification`: classificação de gastos de IA/ML
"""
