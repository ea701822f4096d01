from .config import BuildSettings
from .controller import SceneController, SceneState
from .entities import EntityKind, RawEntity, parse_entities
from .geometry_builder import BuildResult, GeometryBuilder
from .interaction import InteractionDispatcher
from .layer_styles import LayerStyle, SurfaceKind, default_layer_styles, layer_styles_from_config
from .measurement import Measurement, MeasurementEngine
from .persistence import JsonFileStore, MeasurementPersistence, MemoryStore
from .scene import InMemorySceneAdapter, SceneAdapter
from .snap_index import SnapIndex
from . import config, events, exceptions
