# src/costflow/core/pipeline/__init__.py
"""
# Pipeline Core — CostFlow

Este pacote define os **contratos canônicos** e as **estruturas fundamentais**
que compõem um pipeline de enriquecimento no CostFlow.

Um pipeline é modelado como um **DAG explícito de Steps**, onde:
- cada Step declara nome e dependências
- a execução é coordenada exclusivamente pelo Engine
- colaboradores (query handle, cache) são mediados pelo `RunContext`
- um único dataset evolui de Step em Step

## Componentes

- **types**: `StepStatus`, `StepKind`, `StepOutcome`, `ExecutionMetadata`, `PipelineResult`
- **dataset**: `RawDataset`, `EnrichedDataset`
- **step**: `EnrichmentStep` (Protocol)
- **context**: `RunContext`, `RunInputs`, `QueryHandle`
- **registry**: `StepRegistry`

## Invariantes

- Cada Step possui um nome único
- Steps não executam fora do controle do Engine
- Coleções de enriquecimento só crescem ao longo da run
"""
