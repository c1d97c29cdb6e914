"""
Pipeline package for the image relay.

Contains:
- `state`   : Typed `RelayState` definition
- `errors`  : Error taxonomy mapped onto HTTP status codes
- `schemas` : Typed views over the external services' JSON bodies
- `tools`   : LangChain tools calling the detection, embedding and search services
- `nodes`   : LangGraph node callables operating over `RelayState`
- `graph`   : StateGraph builders for the detect and match pipelines
"""
