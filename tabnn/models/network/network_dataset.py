from torch.utils.data import Dataset
from tabnn.data.encode import TrainingTensors


class TabularDataset(Dataset):
    def __init__(self, tensors: TrainingTensors):
        self.inputs = tensors.inputs
        self.outputs = tensors.outputs

    def __len__(self):
        return len(self.inputs)

    def __getitem__(self, item_idx):
        return self.inputs[item_idx], self.outputs[item_idx]  # (input_units,), (output_units,)
